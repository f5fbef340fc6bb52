"""Scripted chat assessment: a short supportive conversation that re-scores
the whole transcript after every user message."""
import random
import threading
import time
import uuid
from datetime import datetime, timezone

from backend.services import risk

GREETING = (
    "Hello! I'm here to provide you with support and help assess how you're feeling. "
    "This conversation is completely confidential and designed to help us understand "
    "how best to support you. Please feel free to share what's on your mind."
)

SUPPORTIVE_RESPONSES = {
    "initial": [
        "Thank you for sharing that with me. It sounds like you're going through something difficult. Can you tell me more about how long you've been feeling this way?",
        "I appreciate you opening up. That takes courage. What's been the most challenging part of what you're experiencing?",
        "I hear you, and I want you to know that your feelings are completely valid. Help me understand what's been weighing on you most heavily.",
    ],
    "follow_up": [
        "That sounds really overwhelming. Have you noticed any specific triggers or patterns to when you feel this way?",
        "I can sense how much pain you're in. Are there times during the day when things feel a bit easier, or is it constant?",
        "You've been carrying a lot. Have you been able to talk to anyone else about these feelings?",
    ],
    "deeper": [
        "It takes strength to keep going when you're feeling like this. What's helped you get through difficult moments before?",
        "I'm concerned about you and want to make sure you're safe. Have you had thoughts about hurting yourself?",
        "Can you help me understand what these feelings look like in your daily life?",
    ],
    "crisis": [
        "I'm very concerned about what you've shared. Your safety is the most important thing right now. I want to make sure you get the immediate support you need.",
        "Thank you for trusting me with something so serious. Right now, let's focus on keeping you safe and getting you connected with people who can help.",
    ],
}

# exchanges after which a non-crisis assessment is finalised
COMPLETION_TURN = 5
FOLLOW_UP_TURNS = 3
CRISIS_SCORE = 70
TOTAL_EXCHANGES = COMPLETION_TURN + 1

# seconds a session is kept after its last request
COMPLETED_TTL = 5 * 60
IDLE_TTL = 60 * 60

NEXT_STEPS = {
    risk.HIGH: "crisis",
    risk.MEDIUM: "medium-risk",
    risk.LOW: "completed",
}


class AssessmentError(Exception):
    pass


class SessionCompleted(AssessmentError):
    pass


class SessionNotFound(KeyError):
    pass


def next_step_for(level):
    return NEXT_STEPS.get(level, NEXT_STEPS[risk.LOW])


def generate_bot_response(user_input, conversation_count, risk_level, rng=random):
    if risk.has_critical_indicator(user_input):
        return rng.choice(SUPPORTIVE_RESPONSES["crisis"])

    if conversation_count == 0:
        return rng.choice(SUPPORTIVE_RESPONSES["initial"])
    if conversation_count < FOLLOW_UP_TURNS:
        return rng.choice(SUPPORTIVE_RESPONSES["follow_up"])
    if risk_level in (risk.HIGH, risk.MEDIUM):
        return rng.choice(SUPPORTIVE_RESPONSES["deeper"])
    return rng.choice(SUPPORTIVE_RESPONSES["follow_up"])


def _now():
    return datetime.now(timezone.utc).isoformat()


class TurnResult:
    def __init__(self, reply, result, completed, final_level=None):
        self.reply = reply
        self.result = result
        self.completed = completed
        self.final_level = final_level

    @property
    def next_step(self):
        return next_step_for(self.final_level) if self.completed else None


class AssessmentSession:

    def __init__(self, user_id=None, session_id=None, rng=None):
        self.session_id = session_id or uuid.uuid4().hex
        self.user_id = user_id
        self.rng = rng or random.Random()
        self.messages = []
        self.user_inputs = []
        self.conversation_count = 0
        self.result = risk.assess([])
        self.completed = False
        self.final_level = None
        self.last_active = None
        self._lock = threading.Lock()
        self._add_message("bot", GREETING)

    def _add_message(self, sender, content):
        message = {
            "id": len(self.messages) + 1,
            "sender": sender,
            "content": content,
            "timestamp": _now(),
        }
        self.messages.append(message)
        return message

    def submit(self, text):
        """Record one user message, re-score everything said so far and
        produce the bot's reply.

        The session completes immediately on a high result (or a score of
        70+), and otherwise after the sixth exchange with the level it has
        reached by then. Only the call that completes the session returns a
        completed ``TurnResult``.
        """
        if text is not None and not isinstance(text, str):
            raise AssessmentError("message must be text")
        text = (text or "").strip()
        if not text:
            raise AssessmentError("message is empty")

        with self._lock:
            if self.completed:
                raise SessionCompleted("assessment already completed")
            return self._turn(text)

    def _turn(self, text):
        self._add_message("user", text)
        self.user_inputs.append(text)
        self.result = result = risk.assess(self.user_inputs)

        if result.level == risk.HIGH or result.score >= CRISIS_SCORE:
            reply = SUPPORTIVE_RESPONSES["crisis"][0]
            self._add_message("bot", reply)
            self._complete(risk.HIGH)
            return TurnResult(reply, result, True, risk.HIGH)

        reply = generate_bot_response(text, self.conversation_count, result.level, self.rng)
        turn = self.conversation_count
        self.conversation_count += 1
        self._add_message("bot", reply)

        if turn >= COMPLETION_TURN:
            level = risk.MEDIUM if result.level == risk.MEDIUM else risk.LOW
            self._complete(level)
            return TurnResult(reply, result, True, level)

        return TurnResult(reply, result, False)

    def _complete(self, level):
        self.completed = True
        self.final_level = level

    @property
    def progress(self):
        return min(self.conversation_count, TOTAL_EXCHANGES), TOTAL_EXCHANGES

    def assessment_data(self):
        return {
            "conversation": list(self.user_inputs),
            "riskFactors": dict(self.result.factors),
            "riskScore": self.result.score,
        }

    def to_dict(self):
        with self._lock:
            return self._snapshot()

    def _snapshot(self):
        done, total = self.progress
        return {
            "session_id": self.session_id,
            "user_id": self.user_id,
            "messages": list(self.messages),
            "conversation_count": self.conversation_count,
            "progress": {"exchanged": done, "total": total},
            "risk_factors": dict(self.result.factors),
            "risk_score": self.result.score,
            "risk_level": self.result.level,
            "completed": self.completed,
            "final_level": self.final_level,
            "next_step": next_step_for(self.final_level) if self.completed else None,
        }


class SessionRegistry:
    """In-process store of live assessment sessions.

    Completed sessions are evicted ``completed_ttl`` seconds after their last
    request, unfinished ones after ``idle_ttl``. Expired sessions are pruned
    whenever a session is created or looked up.
    """

    def __init__(self, completed_ttl=COMPLETED_TTL, idle_ttl=IDLE_TTL, clock=time.monotonic):
        self._sessions = {}
        self._lock = threading.Lock()
        self.completed_ttl = completed_ttl
        self.idle_ttl = idle_ttl
        self.clock = clock

    def _expired(self, session, now):
        ttl = self.completed_ttl if session.completed else self.idle_ttl
        return now - session.last_active >= ttl

    def _prune(self, now):
        expired = [sid for sid, s in self._sessions.items() if self._expired(s, now)]
        for sid in expired:
            del self._sessions[sid]
        return len(expired)

    def prune(self):
        with self._lock:
            return self._prune(self.clock())

    def create(self, user_id=None, rng=None):
        session = AssessmentSession(user_id=user_id, rng=rng)
        with self._lock:
            now = self.clock()
            self._prune(now)
            session.last_active = now
            self._sessions[session.session_id] = session
        return session

    def get(self, session_id):
        with self._lock:
            now = self.clock()
            self._prune(now)
            try:
                session = self._sessions[session_id]
            except KeyError:
                raise SessionNotFound(session_id)
            session.last_active = now
            return session

    def discard(self, session_id):
        with self._lock:
            self._sessions.pop(session_id, None)

    def __len__(self):
        return len(self._sessions)
