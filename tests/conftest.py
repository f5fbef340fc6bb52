import itertools
import os
from datetime import datetime, timezone

import pytest

os.environ["MINDSPACE_INIT_DB"] = "0"

from app import app as flask_app  # noqa: E402
from backend.services.conversation import SessionRegistry  # noqa: E402


class FakeStore:
    """In-memory stand-in for MySQLStore used by the route tests."""

    def __init__(self):
        self.profiles = {}
        self.assessments = []
        self.alerts = []
        self.chat_logs = []
        self.resources = [
            {"id": 2, "title": "Crisis Text Line", "priority_order": 2, "is_active": True},
            {"id": 1, "title": "988 Lifeline", "priority_order": 1, "is_active": True},
            {"id": 3, "title": "Retired line", "priority_order": 0, "is_active": False},
        ]
        self._ids = itertools.count(1)

    @staticmethod
    def _now():
        return datetime.now(timezone.utc).isoformat()

    def add_profile(self, user_id, role="user", **fields):
        profile = {"user_id": user_id, "full_name": None, "phone": None,
                   "emergency_contact": None, "emergency_phone": None, "role": role}
        profile.update(fields)
        self.profiles[user_id] = profile
        return profile

    def get_profile(self, user_id):
        profile = self.profiles.get(user_id)
        return dict(profile) if profile else None

    def get_profiles(self, user_ids):
        return {u: dict(self.profiles[u]) for u in user_ids if u in self.profiles}

    def upsert_profile(self, user_id, fields):
        profile = self.profiles.get(user_id) or self.add_profile(user_id)
        profile.update(fields)
        return dict(profile)

    def is_admin(self, user_id):
        return (self.profiles.get(user_id) or {}).get("role") == "admin"

    def save_assessment(self, user_id, risk_level, score, assessment_data, conversation=None):
        row = {
            "id": next(self._ids),
            "user_id": user_id,
            "risk_level": risk_level,
            "assessment_score": int(round(score)),
            "assessment_data": assessment_data,
            "chatbot_conversation": conversation,
            "created_at": self._now(),
        }
        self.assessments.append(row)
        return row["id"]

    def list_assessments(self, user_id, limit=90):
        return [a for a in reversed(self.assessments) if a["user_id"] == user_id][:limit]

    def recent_assessments(self, limit=20):
        return list(reversed(self.assessments))[:limit]

    def recent_conversations(self, limit=15):
        return [a for a in reversed(self.assessments) if a["chatbot_conversation"] is not None][:limit]

    def assessments_after(self, after_id, limit=100):
        return [a for a in self.assessments if a["id"] > after_id][:limit]

    def insert_alert(self, recipient_phone, message, alert_type, sent_by=None):
        alert = {
            "id": next(self._ids),
            "recipient_phone": recipient_phone,
            "message": message,
            "alert_type": alert_type,
            "sent_by": sent_by,
            "sent_at": self._now(),
        }
        self.alerts.append(alert)
        return alert

    def recent_alerts(self, alert_type=None, limit=10):
        rows = [a for a in reversed(self.alerts) if alert_type is None or a["alert_type"] == alert_type]
        return rows[:limit]

    def alerts_after(self, after_id, limit=100):
        return [a for a in self.alerts if a["id"] > after_id][:limit]

    def list_crisis_resources(self):
        active = [r for r in self.resources if r["is_active"]]
        return sorted(active, key=lambda r: r["priority_order"])

    def save_chat_log(self, user_id, message, score, label, screen_level, suggestion):
        self.chat_logs.append((user_id, message, score, label, screen_level, suggestion))
        return len(self.chat_logs)


class FakeClock:
    def __init__(self, now=1000.0):
        self.now = now

    def __call__(self):
        return self.now

    def advance(self, seconds):
        self.now += seconds


@pytest.fixture
def store():
    return FakeStore()


@pytest.fixture
def client(store, monkeypatch):
    monkeypatch.setitem(flask_app.config, "STORE", store)
    monkeypatch.setitem(flask_app.config, "SESSIONS", SessionRegistry())
    flask_app.config["TESTING"] = True
    with flask_app.test_client() as client:
        yield client


NEUTRAL = "The weather is nice today"

MEDIUM_MESSAGES = [
    "I feel hopeless and helpless, trapped with no way out and stuck",
    "I am depressed, sad all the time, crying constantly and I can't stop crying",
    "I am isolated and lonely with no friends, no support, abandoned",
]

CRISIS_MESSAGE = (
    "suicide, I want to kill myself and end my life, I want to die. "
    "I cut myself, hurt myself, self harm, burning myself. "
    "No hope, nothing will change, pointless, no future. "
    "Severely depressed, can't function, completely overwhelmed, completely alone and nobody cares."
)
