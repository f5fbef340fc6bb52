import logging

logger = logging.getLogger(__name__)

# -----------------------------
# Sentiment Analyzer (VADER)
# -----------------------------
try:
    from nltk.sentiment.vader import SentimentIntensityAnalyzer
    SIA = SentimentIntensityAnalyzer()
    SIA_AVAILABLE = True
except LookupError as e:
    # vader_lexicon not downloaded: nltk.download("vader_lexicon")
    logger.warning("⚠️ Sentiment not available: %s", e)
    SIA = None
    SIA_AVAILABLE = False

POSITIVE, NEGATIVE, NEUTRAL = "POSITIVE", "NEGATIVE", "NEUTRAL"


def label_for(score):
    if score >= 0.05:
        return POSITIVE
    if score <= -0.05:
        return NEGATIVE
    return NEUTRAL


def polarity(text, analyzer=None):
    """Return ``(compound, label)`` for ``text``; neutral when VADER is missing."""
    analyzer = analyzer or SIA
    if analyzer is None or not text:
        return 0.0, NEUTRAL
    score = analyzer.polarity_scores(text).get("compound", 0.0)
    return score, label_for(score)
