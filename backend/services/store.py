import json

from backend.db import get_connection

PROFILE_FIELDS = ("full_name", "phone", "emergency_contact", "emergency_phone")


def _iso(value):
    return value.isoformat() if hasattr(value, "isoformat") else value


def _json(value):
    if value is None or isinstance(value, (dict, list)):
        return value
    return json.loads(value)


def _assessment_row(r):
    return {
        "id": r["id"],
        "user_id": r["user_id"],
        "risk_level": r["risk_level"],
        "assessment_score": r["assessment_score"],
        "assessment_data": _json(r["assessment_data"]),
        "chatbot_conversation": _json(r.get("chatbot_conversation")),
        "created_at": _iso(r["created_at"]),
    }


def _alert_row(r):
    row = dict(r)
    row["sent_at"] = _iso(row.get("sent_at"))
    return row


class MySQLStore:
    """Table access for the assessment, alert and monitoring features.

    Every call opens its own connection; ``mysql.connector.Error`` is left
    to the caller.
    """

    def __init__(self, connect=get_connection):
        self.connect = connect

    def _fetchall(self, sql, params=()):
        conn = self.connect()
        cursor = conn.cursor(dictionary=True)
        cursor.execute(sql, params)
        rows = cursor.fetchall()
        cursor.close()
        conn.close()
        return rows

    def _fetchone(self, sql, params=()):
        rows = self._fetchall(sql, params)
        return rows[0] if rows else None

    def _insert(self, sql, params):
        conn = self.connect()
        cursor = conn.cursor()
        cursor.execute(sql, params)
        conn.commit()
        row_id = cursor.lastrowid
        cursor.close()
        conn.close()
        return row_id

    # --- profiles ---
    def get_profile(self, user_id):
        row = self._fetchone(
            "SELECT user_id, full_name, phone, emergency_contact, emergency_phone, role "
            "FROM profiles WHERE user_id=%s",
            (user_id,),
        )
        return dict(row) if row else None

    def get_profiles(self, user_ids):
        user_ids = sorted({u for u in user_ids if u})
        if not user_ids:
            return {}
        marks = ",".join(["%s"] * len(user_ids))
        rows = self._fetchall(
            f"SELECT user_id, full_name, emergency_contact, emergency_phone FROM profiles WHERE user_id IN ({marks})",
            tuple(user_ids),
        )
        return {r["user_id"]: dict(r) for r in rows}

    def upsert_profile(self, user_id, fields):
        values = [fields.get(f) for f in PROFILE_FIELDS]
        self._insert(
            """INSERT INTO profiles (user_id, full_name, phone, emergency_contact, emergency_phone)
               VALUES (%s,%s,%s,%s,%s)
               ON DUPLICATE KEY UPDATE full_name=VALUES(full_name), phone=VALUES(phone),
                   emergency_contact=VALUES(emergency_contact), emergency_phone=VALUES(emergency_phone)""",
            (user_id, *values),
        )
        return self.get_profile(user_id)

    def is_admin(self, user_id):
        if not user_id:
            return False
        row = self._fetchone("SELECT role FROM profiles WHERE user_id=%s", (user_id,))
        return bool(row) and row["role"] == "admin"

    # --- risk_assessments ---
    def save_assessment(self, user_id, risk_level, score, assessment_data, conversation=None):
        return self._insert(
            """INSERT INTO risk_assessments
               (user_id, risk_level, assessment_score, assessment_data, chatbot_conversation)
               VALUES (%s,%s,%s,%s,%s)""",
            (user_id, risk_level, int(round(score)), json.dumps(assessment_data),
             json.dumps(conversation) if conversation is not None else None),
        )

    def list_assessments(self, user_id, limit=90):
        rows = self._fetchall(
            "SELECT * FROM risk_assessments WHERE user_id=%s ORDER BY created_at DESC, id DESC LIMIT %s",
            (user_id, limit),
        )
        return [_assessment_row(r) for r in rows]

    def recent_assessments(self, limit=20):
        rows = self._fetchall(
            "SELECT * FROM risk_assessments ORDER BY created_at DESC, id DESC LIMIT %s", (limit,)
        )
        return [_assessment_row(r) for r in rows]

    def recent_conversations(self, limit=15):
        rows = self._fetchall(
            "SELECT * FROM risk_assessments WHERE chatbot_conversation IS NOT NULL "
            "ORDER BY created_at DESC, id DESC LIMIT %s",
            (limit,),
        )
        return [_assessment_row(r) for r in rows]

    def assessments_after(self, after_id, limit=100):
        rows = self._fetchall(
            "SELECT * FROM risk_assessments WHERE id > %s ORDER BY id LIMIT %s", (after_id, limit)
        )
        return [_assessment_row(r) for r in rows]

    # --- sms_alerts ---
    def insert_alert(self, recipient_phone, message, alert_type, sent_by=None):
        alert_id = self._insert(
            "INSERT INTO sms_alerts (recipient_phone, message, alert_type, sent_by) VALUES (%s,%s,%s,%s)",
            (recipient_phone, message, alert_type, sent_by),
        )
        return {
            "id": alert_id,
            "recipient_phone": recipient_phone,
            "message": message,
            "alert_type": alert_type,
            "sent_by": sent_by,
        }

    def recent_alerts(self, alert_type=None, limit=10):
        if alert_type:
            rows = self._fetchall(
                "SELECT * FROM sms_alerts WHERE alert_type=%s ORDER BY sent_at DESC, id DESC LIMIT %s",
                (alert_type, limit),
            )
        else:
            rows = self._fetchall("SELECT * FROM sms_alerts ORDER BY sent_at DESC, id DESC LIMIT %s", (limit,))
        return [_alert_row(r) for r in rows]

    def alerts_after(self, after_id, limit=100):
        rows = self._fetchall("SELECT * FROM sms_alerts WHERE id > %s ORDER BY id LIMIT %s", (after_id, limit))
        return [_alert_row(r) for r in rows]

    # --- crisis_resources ---
    def list_crisis_resources(self):
        return self._fetchall(
            "SELECT id, resource_type, title, description, phone_number, website_url, "
            "available_hours, priority_order FROM crisis_resources "
            "WHERE is_active = TRUE ORDER BY priority_order"
        )

    # --- chat_logs ---
    def save_chat_log(self, user_id, message, score, label, screen_level, suggestion):
        return self._insert(
            """INSERT INTO chat_logs
               (user_id, message, sentiment_score, sentiment_label, screen_level, suggestion)
               VALUES (%s,%s,%s,%s,%s,%s)""",
            (user_id, message, score, label, screen_level, suggestion),
        )
