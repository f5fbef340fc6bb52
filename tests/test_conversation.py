import random
import threading

import pytest

from backend.services import risk
from backend.services.conversation import (
    GREETING,
    SUPPORTIVE_RESPONSES,
    AssessmentError,
    COMPLETED_TTL,
    IDLE_TTL,
    AssessmentSession,
    SessionCompleted,
    SessionNotFound,
    SessionRegistry,
    generate_bot_response,
    next_step_for,
)
from tests.conftest import CRISIS_MESSAGE, MEDIUM_MESSAGES, NEUTRAL, FakeClock


@pytest.fixture
def session():
    return AssessmentSession(user_id="u1", rng=random.Random(7))


def test_session_opens_with_greeting(session):
    assert session.messages[0]["sender"] == "bot"
    assert session.messages[0]["content"] == GREETING
    assert not session.completed


def test_reply_progression_for_low_risk(session):
    replies = [session.submit(NEUTRAL).reply for _ in range(5)]
    assert replies[0] in SUPPORTIVE_RESPONSES["initial"]
    for reply in replies[1:]:
        assert reply in SUPPORTIVE_RESPONSES["follow_up"]
    assert not session.completed
    assert session.conversation_count == 5


def test_low_assessment_completes_on_sixth_exchange(session):
    for _ in range(5):
        session.submit(NEUTRAL)
    turn = session.submit(NEUTRAL)
    assert turn.completed
    assert turn.final_level == risk.LOW
    assert turn.next_step == "completed"
    assert session.final_level == risk.LOW


def test_medium_assessment_goes_deeper_then_completes(session):
    turns = [session.submit(text) for text in MEDIUM_MESSAGES]
    assert turns[-1].result.level == risk.MEDIUM
    assert not turns[-1].completed

    later = [session.submit(NEUTRAL) for _ in range(3)]
    for turn in later:
        assert turn.reply in SUPPORTIVE_RESPONSES["deeper"]
    assert later[-1].completed
    assert later[-1].final_level == risk.MEDIUM
    assert later[-1].next_step == "medium-risk"


def test_high_risk_completes_immediately(session):
    turn = session.submit(CRISIS_MESSAGE)
    assert turn.result.level == risk.HIGH
    assert turn.completed
    assert turn.final_level == risk.HIGH
    assert turn.reply == SUPPORTIVE_RESPONSES["crisis"][0]
    assert turn.next_step == "crisis"
    assert session.conversation_count == 0


def test_critical_keyword_without_high_score_gets_crisis_reply(session):
    turn = session.submit("I keep cutting")
    assert turn.result.level == risk.LOW
    assert turn.reply in SUPPORTIVE_RESPONSES["crisis"]
    assert not turn.completed


def test_blank_message_rejected_without_state_change(session):
    with pytest.raises(AssessmentError):
        session.submit("   ")
    assert session.user_inputs == []
    assert len(session.messages) == 1


def test_completed_session_rejects_messages(session):
    session.submit(CRISIS_MESSAGE)
    with pytest.raises(SessionCompleted):
        session.submit(NEUTRAL)


def test_assessment_data_snapshot(session):
    session.submit("I feel hopeless")
    data = session.assessment_data()
    assert data["conversation"] == ["I feel hopeless"]
    assert data["riskFactors"]["hopelessness"] == 2
    assert data["riskScore"] == pytest.approx(14 / 530 * 100)


def test_transcript_alternates(session):
    session.submit(NEUTRAL)
    assert [m["sender"] for m in session.messages] == ["bot", "user", "bot"]
    assert [m["id"] for m in session.messages] == [1, 2, 3]


def test_generate_bot_response_stages():
    rng = random.Random(1)
    assert generate_bot_response(NEUTRAL, 0, risk.LOW, rng) in SUPPORTIVE_RESPONSES["initial"]
    assert generate_bot_response(NEUTRAL, 2, risk.HIGH, rng) in SUPPORTIVE_RESPONSES["follow_up"]
    assert generate_bot_response(NEUTRAL, 3, risk.MEDIUM, rng) in SUPPORTIVE_RESPONSES["deeper"]
    assert generate_bot_response(NEUTRAL, 3, risk.LOW, rng) in SUPPORTIVE_RESPONSES["follow_up"]
    assert generate_bot_response("thinking of suicide", 4, risk.LOW, rng) in SUPPORTIVE_RESPONSES["crisis"]


def test_next_step_for():
    assert next_step_for(risk.HIGH) == "crisis"
    assert next_step_for(risk.MEDIUM) == "medium-risk"
    assert next_step_for(risk.LOW) == "completed"


def test_registry_lifecycle():
    registry = SessionRegistry()
    created = registry.create(user_id="u2")
    assert registry.get(created.session_id) is created
    assert len(registry) == 1
    registry.discard(created.session_id)
    with pytest.raises(SessionNotFound):
        registry.get(created.session_id)


@pytest.mark.parametrize("text", [123, ["hello"], {"text": "hi"}])
def test_non_text_message_rejected(session, text):
    with pytest.raises(AssessmentError):
        session.submit(text)
    assert session.user_inputs == []


def test_concurrent_submits_complete_once(session):
    barrier = threading.Barrier(8)
    turns, rejected = [], []

    def send():
        barrier.wait()
        try:
            turns.append(session.submit(CRISIS_MESSAGE))
        except SessionCompleted:
            rejected.append(True)

    threads = [threading.Thread(target=send) for _ in range(8)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    assert len(turns) == 1 and turns[0].completed
    assert len(rejected) == 7
    assert session.user_inputs == [CRISIS_MESSAGE]


def test_registry_evicts_completed_sessions():
    clock = FakeClock()
    registry = SessionRegistry(clock=clock)
    for _ in range(5):
        registry.create().submit(CRISIS_MESSAGE)
    live = registry.create()
    assert len(registry) == 6

    clock.advance(COMPLETED_TTL)
    assert registry.prune() == 5
    assert len(registry) == 1
    assert registry.get(live.session_id) is live


def test_registry_keeps_completed_session_readable_until_ttl():
    clock = FakeClock()
    registry = SessionRegistry(clock=clock)
    done = registry.create()
    done.submit(CRISIS_MESSAGE)

    clock.advance(COMPLETED_TTL - 1)
    assert registry.get(done.session_id) is done
    # each lookup refreshes the session
    clock.advance(COMPLETED_TTL - 1)
    assert registry.get(done.session_id) is done
    clock.advance(COMPLETED_TTL)
    with pytest.raises(SessionNotFound):
        registry.get(done.session_id)


def test_registry_evicts_idle_sessions():
    clock = FakeClock()
    registry = SessionRegistry(clock=clock)
    idle = registry.create()
    idle.submit(NEUTRAL)

    clock.advance(COMPLETED_TTL)
    assert registry.prune() == 0
    clock.advance(IDLE_TTL)
    registry.create()
    assert len(registry) == 1
    with pytest.raises(SessionNotFound):
        registry.get(idle.session_id)
