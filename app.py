from flask import Flask, request, jsonify
import os
import logging

import mysql.connector

from backend.db import init_tables
from backend.services import alerts, guidance, monitor, risk, sentiment
from backend.services.conversation import (
    AssessmentError,
    SessionCompleted,
    SessionNotFound,
    SessionRegistry,
    next_step_for,
)
from backend.services.store import MySQLStore, PROFILE_FIELDS


# -----------------------------
# Flask app
# -----------------------------
app = Flask(__name__)
app.config["STORE"] = MySQLStore()
app.config["SESSIONS"] = SessionRegistry()
app.config["INIT_DB"] = os.getenv("MINDSPACE_INIT_DB", "1") == "1"

logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(name)s: %(message)s")


def get_store():
    return app.config["STORE"]


def get_sessions():
    return app.config["SESSIONS"]


def error(message, status):
    return jsonify({"message": message}), status


def caller_id(data=None):
    """Acting user: X-User-Id header, else ``user_id`` from the body or query."""
    user_id = request.headers.get("X-User-Id")
    if not user_id and data:
        user_id = data.get("user_id")
    if not user_id:
        user_id = request.args.get("user_id")
    return str(user_id) if user_id else None


@app.errorhandler(mysql.connector.Error)
def handle_db_error(e):
    app.logger.error("⚠️ DB error: %s", e)
    return error("Server error", 500)


# -----------------------------
# Assessment (scripted chat)
# -----------------------------
def turn_payload(session, turn):
    result = turn.result
    payload = {
        "session_id": session.session_id,
        "reply": turn.reply,
        "risk_factors": dict(result.factors),
        "risk_score": result.score,
        "display_score": int(round(result.score)),
        "risk_level": result.level,
        "conversation_count": session.conversation_count,
        "completed": turn.completed,
    }
    if turn.completed:
        payload["final_level"] = turn.final_level
        payload["next_step"] = turn.next_step
        payload["guidance"] = guidance.guidance_for(turn.final_level)
    return payload


def finish_assessment(session, turn):
    """Persist a completed assessment and raise the alarm on a high result.

    Storage failures are logged; the user still gets their reply.
    """
    outcome = {"saved": False, "alerts": []}
    if not session.user_id:
        return outcome

    store = get_store()
    try:
        store.save_assessment(
            session.user_id,
            turn.final_level,
            turn.result.score,
            session.assessment_data(),
            conversation=session.messages,
        )
        outcome["saved"] = True
    except mysql.connector.Error as e:
        app.logger.error("⚠️ Assessment insert error: %s", e)

    if turn.final_level == risk.HIGH:
        try:
            outcome["alerts"] = alerts.trigger_emergency_response(store, session.user_id)
        except mysql.connector.Error as e:
            app.logger.error("⚠️ Emergency alert error: %s", e)
    return outcome


# --- Start ---
@app.route("/api/assessment/start", methods=["POST"])
def start_assessment():
    data = request.get_json(silent=True) or {}
    session = get_sessions().create(user_id=caller_id(data))
    return jsonify({
        "session_id": session.session_id,
        "messages": session.messages,
        "progress": session.to_dict()["progress"],
    }), 201


# --- Message ---
@app.route("/api/assessment/<session_id>/message", methods=["POST"])
def assessment_message(session_id):
    data = request.get_json(silent=True) or {}
    try:
        session = get_sessions().get(session_id)
        turn = session.submit(data.get("text"))
    except SessionNotFound:
        return error("assessment not found", 404)
    except SessionCompleted as e:
        return error(str(e), 409)
    except AssessmentError as e:
        return error(str(e), 400)

    payload = turn_payload(session, turn)
    if turn.completed:
        outcome = finish_assessment(session, turn)
        payload["saved"] = outcome["saved"]
        payload["alerts_recorded"] = len(outcome["alerts"])
    return jsonify(payload)


# --- State ---
@app.route("/api/assessment/<session_id>", methods=["GET"])
def assessment_state(session_id):
    try:
        session = get_sessions().get(session_id)
    except SessionNotFound:
        return error("assessment not found", 404)
    return jsonify(session.to_dict())


# --- History ---
@app.route("/api/assessments", methods=["GET"])
def assessment_history():
    user_id = caller_id()
    if not user_id:
        return error("missing user_id", 400)
    limit = request.args.get("limit", default=90, type=int)
    return jsonify(get_store().list_assessments(user_id, max(1, min(limit, 365))))


# --- Stateless scoring ---
@app.route("/api/risk/score", methods=["POST"])
def score_inputs():
    data = request.get_json(silent=True) or {}
    inputs = data.get("inputs")
    if not isinstance(inputs, list) or not all(isinstance(i, str) for i in inputs):
        return error("inputs must be a list of strings", 400)

    result = risk.assess(inputs)
    return jsonify({
        "risk_factors": dict(result.factors),
        "risk_score": result.score,
        "display_score": int(round(result.score)),
        "risk_level": result.level,
        "next_step": next_step_for(result.level),
    })


@app.route("/api/guidance/<level>", methods=["GET"])
def tier_guidance(level):
    try:
        return jsonify(guidance.guidance_for(level.lower()))
    except ValueError as e:
        return error(str(e), 404)


# -----------------------------
# Wellness chat (sentiment + suggestions)
# -----------------------------
@app.route("/api/chat", methods=["POST"])
def chat():
    payload = request.get_json(silent=True) or {}
    text = (payload.get("text") or "").strip()
    user_id = caller_id(payload)

    if not text:
        return jsonify({"reply": "Please send a message."})

    score, label = sentiment.polarity(text)
    screen = risk.quick_screen([text])
    suggestion = guidance.chat_suggestion(score, text)

    if screen == risk.HIGH:
        reply = ("I'm really concerned about what you've shared. Your safety is the most important thing "
                 "right now. Please know that you're not alone and help is available.")
    else:
        reply = "I hear you. Thank you for sharing how you're feeling."

    try:
        get_store().save_chat_log(user_id, text, score, label, screen, suggestion)
    except mysql.connector.Error as e:
        app.logger.error("⚠️ DB insert error: %s", e)

    return jsonify({
        "reply": reply,
        "label": label,
        "score": score,
        "screen_level": screen,
        "suggestion": suggestion,
        "next_step": next_step_for(screen) if screen == risk.HIGH else None,
    })


# -----------------------------
# Crisis support
# -----------------------------
@app.route("/api/crisis/resources", methods=["GET"])
def crisis_resources():
    return jsonify(get_store().list_crisis_resources())


@app.route("/api/crisis/location", methods=["POST"])
def crisis_location():
    data = request.get_json(silent=True) or {}
    user_id = caller_id(data)
    if not user_id or data.get("lat") is None or data.get("lng") is None:
        return error("missing fields", 400)
    try:
        alert = alerts.share_location(get_store(), user_id, data["lat"], data["lng"])
    except ValueError as e:
        return error(str(e), 400)
    return jsonify({"ok": True, "alert": alert}), 201


# -----------------------------
# Profile (emergency contact)
# -----------------------------
@app.route("/api/profile", methods=["GET"])
def get_profile():
    user_id = caller_id()
    if not user_id:
        return error("missing user_id", 400)
    profile = get_store().get_profile(user_id)
    if not profile:
        return error("profile not found", 404)
    return jsonify(profile)


@app.route("/api/profile", methods=["PUT"])
def put_profile():
    data = request.get_json(silent=True) or {}
    user_id = caller_id(data)
    if not user_id:
        return error("missing user_id", 400)
    store = get_store()
    # omitted fields keep their stored value, explicit nulls clear them
    current = store.get_profile(user_id) or {}
    fields = {f: current.get(f) for f in PROFILE_FIELDS}
    fields.update({f: (data.get(f) or None) for f in PROFILE_FIELDS if f in data})

    if bool(fields["emergency_contact"]) != bool(fields["emergency_phone"]):
        return error("emergency contact needs both a name and a phone", 400)
    return jsonify(store.upsert_profile(user_id, fields))


# -----------------------------
# Admin monitoring
# -----------------------------
def require_admin(data=None):
    if not get_store().is_admin(caller_id(data)):
        return error("admin access required", 403)
    return None


@app.route("/api/admin/monitor/users", methods=["GET"])
def admin_active_users():
    denied = require_admin()
    if denied:
        return denied
    return jsonify(monitor.active_users(get_store()))


@app.route("/api/admin/monitor/alerts", methods=["GET"])
def admin_crisis_alerts():
    denied = require_admin()
    if denied:
        return denied
    return jsonify(monitor.crisis_alerts(get_store()))


@app.route("/api/admin/monitor/conversations", methods=["GET"])
def admin_conversations():
    denied = require_admin()
    if denied:
        return denied
    return jsonify(monitor.live_conversations(get_store()))


@app.route("/api/admin/monitor/events", methods=["GET"])
def admin_events():
    denied = require_admin()
    if denied:
        return denied
    after_assessment = request.args.get("after_assessment", default=0, type=int)
    after_alert = request.args.get("after_alert", default=0, type=int)
    return jsonify(monitor.events_since(get_store(), after_assessment, after_alert))


@app.route("/api/admin/intervene", methods=["POST"])
def admin_intervene():
    data = request.get_json(silent=True) or {}
    denied = require_admin(data)
    if denied:
        return denied
    target = data.get("target_user_id")
    if not target:
        return error("missing target_user_id", 400)
    alert = alerts.admin_intervention(get_store(), target)
    return jsonify({"ok": True, "alert": alert}), 201


# -----------------------------
# Init tables at startup
# -----------------------------
def setup_database(flask_app):
    if not flask_app.config["INIT_DB"]:
        return False
    init_tables()
    return True


setup_database(app)

# -----------------------------
# Run app
# -----------------------------
if __name__ == "__main__":
    app.run(
        host=os.getenv("MINDSPACE_HOST", "0.0.0.0"),
        port=int(os.getenv("MINDSPACE_PORT", 8000)),
        debug=os.getenv("MINDSPACE_DEBUG", "0") == "1",
    )
