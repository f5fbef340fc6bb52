from backend.services import risk
from backend.services.alerts import ALERT_CRISIS_EMERGENCY

ANONYMOUS = "Anonymous User"


def _name(profiles, user_id):
    return (profiles.get(user_id) or {}).get("full_name") or ANONYMOUS


def active_users(store, limit=20):
    rows = store.recent_assessments(limit)
    profiles = store.get_profiles(r["user_id"] for r in rows)
    users = []
    for r in rows:
        profile = profiles.get(r["user_id"]) or {}
        data = r["assessment_data"] or {}
        users.append({
            "user_id": r["user_id"],
            "profile": {
                "full_name": _name(profiles, r["user_id"]),
                "emergency_contact": profile.get("emergency_contact") or "",
                "emergency_phone": profile.get("emergency_phone") or "",
            },
            "risk_level": r["risk_level"],
            "last_activity": r["created_at"],
            "conversation_count": len(data.get("conversation") or []),
        })
    return users


def crisis_alerts(store, limit=10):
    rows = store.recent_alerts(ALERT_CRISIS_EMERGENCY, limit)
    profiles = store.get_profiles(r.get("sent_by") for r in rows)
    alerts = []
    for r in rows:
        alert = dict(r)
        alert["user_id"] = r.get("sent_by") or ""
        alert["profile"] = {"full_name": _name(profiles, r.get("sent_by"))}
        alerts.append(alert)
    return alerts


def live_conversations(store, limit=15):
    rows = store.recent_conversations(limit)
    profiles = store.get_profiles(r["user_id"] for r in rows)
    return [dict(r, profile={"full_name": _name(profiles, r["user_id"])}) for r in rows]


def events_since(store, after_assessment_id=0, after_alert_id=0):
    """Polling feed of rows inserted after the given ids.

    ``cursor`` holds the ids to send back on the next poll.
    """
    assessments = store.assessments_after(after_assessment_id)
    alerts = store.alerts_after(after_alert_id)
    return {
        "assessments": assessments,
        "alerts": alerts,
        "high_risk": any(a["risk_level"] == risk.HIGH for a in assessments),
        "crisis_emergency": any(a["alert_type"] == ALERT_CRISIS_EMERGENCY for a in alerts),
        "cursor": {
            "assessment_id": max([a["id"] for a in assessments], default=after_assessment_id),
            "alert_id": max([a["id"] for a in alerts], default=after_alert_id),
        },
    }
