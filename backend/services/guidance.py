from backend.services import risk

LIFELINE = {"title": "988 Lifeline", "detail": "24/7 Crisis Support", "href": "tel:988"}
TEXT_LINE = {"title": "Crisis Text Line", "detail": "Text HOME to 741741", "href": "sms:741741?body=HOME"}
ONLINE_CHAT = {"title": "Online Chat", "detail": "Chat with a crisis counselor",
               "href": "https://suicidepreventionlifeline.org/chat/"}

TIER_GUIDANCE = {
    risk.HIGH: {
        "title": "Immediate Support Available",
        "summary": "You don't have to face this alone. Please reach out to one of these "
                   "services right now. Your safety matters most.",
        "resources": [LIFELINE, TEXT_LINE, {"title": "Emergency Services", "detail": "Call 911", "href": "tel:911"}],
        "actions": [
            "Call or text a crisis line now.",
            "Share your location with emergency services if you are in immediate danger.",
            "Stay with someone you trust until you feel safer.",
        ],
    },
    risk.MEDIUM: {
        "title": "Medium Risk Assessment Result",
        "summary": "Your assessment indicates you may be experiencing some challenges "
                   "that could benefit from additional support.",
        "resources": [LIFELINE, TEXT_LINE, ONLINE_CHAT],
        "actions": [
            "Try 4-7-8 breathing: Inhale for 4, hold for 7, exhale for 8.",
            "Name 5 things you see, 4 you hear, 3 you touch, 2 you smell, 1 you taste.",
            "Reach out to a trusted friend, family member, or support person.",
            "Focus on what you can control right now, one moment at a time.",
            "Consider scheduling a session with a counsellor.",
        ],
    },
    risk.LOW: {
        "title": "Assessment Complete",
        "summary": "Your wellness assessment has been completed. Continue to your dashboard "
                   "for personalized recommendations.",
        "resources": [LIFELINE],
        "actions": [
            "Keep up healthy routines: sleep, hydration, and social time.",
            "Check in with yourself again whenever things feel heavier.",
        ],
    },
}


def guidance_for(level):
    if level not in TIER_GUIDANCE:
        raise ValueError("unknown risk level: %r" % (level,))
    content = dict(TIER_GUIDANCE[level])
    content["level"] = level
    return content


# -----------------------------
# Suggestion logic (chat)
# -----------------------------
def chat_suggestion(score, text=""):
    text = (text or "").lower()

    # Keyword-based detection first
    if any(word in text for word in ["tired", "exhausted", "fatigued", "sleepy", "drowsy"]):
        return "It sounds like you're feeling tired. Try taking a short rest, staying hydrated, or adjusting your sleep routine."
    if any(word in text for word in ["anxious", "worried", "nervous", "tense"]):
        return "I sense some anxiety. Deep breathing or journaling your thoughts may help calm your mind."
    if any(word in text for word in ["angry", "frustrated", "mad", "furious"]):
        return "It seems like you're upset. Taking a break or practicing relaxation techniques might help."
    if any(word in text for word in ["sad", "lonely", "depressed", "down"]):
        return "I hear some sadness in your words. Talking to a close friend or engaging in a hobby may lift your mood."

    # Fallback to sentiment-score ranges
    if score <= -0.5:
        return "Your message sounds heavy. Try deep breathing for a few minutes and consider sharing your thoughts with someone you trust."
    elif score <= -0.2:
        return "It sounds like things are a bit hard right now. A short walk or writing down your feelings may help calm your mind."
    elif score <= 0.2:
        return "Thanks for checking in. A quick relaxation exercise, like stretching or listening to music, can be a nice reset."
    else:
        return "Good to hear. Keep maintaining your positive habits and continue doing what makes you feel good."
