"""
Keyword-weighted risk scoring for the chat assessment.

Every user message so far is joined into one lower-cased text and scanned
for the keywords of each risk category. Critical hits score 3, high hits 2
and medium hits 1, capped at 10 per category. The weighted sum is then
normalised to 0-100 and bucketed into low / medium / high.
"""
from collections import namedtuple, OrderedDict

LOW, MEDIUM, HIGH = "low", "medium", "high"

MEDIUM_THRESHOLD = 30
HIGH_THRESHOLD = 60
FACTOR_CAP = 10

TIER_POINTS = (("critical", 3), ("high", 2), ("medium", 1))

RiskPattern = namedtuple("RiskPattern", ["critical", "high", "medium", "weight"])
RiskResult = namedtuple("RiskResult", ["factors", "score", "level"])


RISK_PATTERNS = OrderedDict([
    ("suicidal_ideation", RiskPattern(
        critical=("suicide", "kill myself", "end my life", "want to die", "better off dead", "no point living"),
        high=("not worth living", "wish i was dead", "end it all", "don't want to be here"),
        medium=("life is meaningless", "what's the point", "tired of living"),
        weight=10,
    )),
    ("self_harm", RiskPattern(
        critical=("cut myself", "hurt myself", "self harm", "cutting", "burning myself"),
        high=("harm myself", "pain helps", "deserve pain", "punish myself"),
        medium=("feel numb", "need to feel something"),
        weight=8,
    )),
    ("hopelessness", RiskPattern(
        critical=("no hope", "nothing will change", "pointless", "no future"),
        high=("hopeless", "helpless", "trapped", "no way out", "stuck"),
        medium=("discouraged", "defeated", "lost", "empty"),
        weight=7,
    )),
    ("depression", RiskPattern(
        critical=("severely depressed", "can't function", "completely overwhelmed"),
        high=("depressed", "sad all the time", "crying constantly", "can't stop crying"),
        medium=("sad", "down", "blue", "upset", "unhappy", "melancholy"),
        weight=6,
    )),
    ("isolation", RiskPattern(
        critical=("completely alone", "nobody cares", "no one would miss me"),
        high=("isolated", "lonely", "no friends", "no support", "abandoned"),
        medium=("alone", "disconnected", "withdrawn", "antisocial"),
        weight=5,
    )),
    ("anxiety", RiskPattern(
        critical=("panic attacks", "can't breathe", "constant fear", "terrified"),
        high=("anxious", "worried sick", "panic", "scared", "overwhelmed"),
        medium=("nervous", "stressed", "worried", "tense", "uneasy"),
        weight=4,
    )),
    ("substance_use", RiskPattern(
        critical=("overdose", "drinking heavily", "using drugs daily", "can't stop using"),
        high=("drinking too much", "using drugs", "addicted", "need substances"),
        medium=("drinking", "smoking", "using", "substances help"),
        weight=6,
    )),
    ("trauma", RiskPattern(
        critical=("traumatized", "ptsd", "flashbacks", "nightmares constantly"),
        high=("trauma", "abuse", "attacked", "violated", "haunted"),
        medium=("bad memories", "hurt before", "past events", "triggers"),
        weight=7,
    )),
])


def _combined_text(user_inputs):
    return " ".join(user_inputs or []).lower()


def analyze_risk_factors(user_inputs, patterns=RISK_PATTERNS):
    """Score every category of ``patterns`` against the joined messages.

    Each keyword is counted once no matter how often it appears.
    """
    text = _combined_text(user_inputs)
    factors = OrderedDict()
    for category, pattern in patterns.items():
        points = 0
        for tier, value in TIER_POINTS:
            for keyword in getattr(pattern, tier):
                if keyword.lower() in text:
                    points += value
        factors[category] = min(points, FACTOR_CAP)
    return factors


def risk_level_for(score):
    if score >= HIGH_THRESHOLD:
        return HIGH
    if score >= MEDIUM_THRESHOLD:
        return MEDIUM
    return LOW


def calculate_overall_risk(factors, patterns=RISK_PATTERNS):
    """Return ``(score, level)`` where score is the weighted 0-100 total."""
    weighted = 0
    max_possible = 0
    for category, pattern in patterns.items():
        weighted += factors.get(category, 0) * pattern.weight
        max_possible += FACTOR_CAP * pattern.weight

    if not max_possible:
        return 0.0, LOW

    score = weighted / max_possible * 100
    return score, risk_level_for(score)


def assess(user_inputs, patterns=RISK_PATTERNS):
    factors = analyze_risk_factors(user_inputs, patterns)
    score, level = calculate_overall_risk(factors, patterns)
    return RiskResult(factors=factors, score=score, level=level)


def has_critical_indicator(text, patterns=RISK_PATTERNS):
    text = (text or "").lower()
    return any(
        keyword.lower() in text
        for pattern in patterns.values()
        for keyword in pattern.critical
    )


# -----------------------------
# Quick screen (general wellness chat)
# -----------------------------
CRISIS_KEYWORDS = [
    "suicide", "kill myself", "end it all", "no point", "hopeless",
    "worthless", "hate myself", "want to die", "harm myself", "cut myself",
    "self harm", "hurt myself", "not worth", "better off dead", "give up",
    "can't go on", "empty inside", "nothing matters", "alone forever",
]

NEGATIVE_PATTERNS = [
    "can't sleep", "not sleeping", "insomnia", "nightmares",
    "not eating", "lost appetite", "can't eat", "weight loss",
    "panic", "anxiety", "depressed", "sad", "crying",
    "isolated", "alone", "no friends", "nobody cares",
    "tired", "exhausted", "drained", "overwhelmed",
    "stressed", "pressure", "breaking down", "falling apart",
]

POSITIVE_PATTERNS = [
    "support", "family", "friends", "help", "better",
    "improving", "hope", "future", "goals", "therapy",
]

QUICK_SCREEN_THRESHOLD = 3


def quick_screen(user_inputs):
    """Two-level screen: any crisis keyword is ``high``, otherwise a
    negative/positive pattern tally of 3 or more is ``high``."""
    text = _combined_text(user_inputs)
    if any(keyword in text for keyword in CRISIS_KEYWORDS):
        return HIGH

    tally = 0.0
    for pattern in NEGATIVE_PATTERNS:
        if pattern in text:
            tally += 1
    for pattern in POSITIVE_PATTERNS:
        if pattern in text:
            tally -= 0.5
    return HIGH if tally >= QUICK_SCREEN_THRESHOLD else LOW
