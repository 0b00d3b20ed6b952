"""
Heuristic language detection.

Scores a text sample against short stoplists of function words plus a bonus
for diagnostic diacritics. Used only to steer generated content into the
student's apparent language, so it favours a cheap guess over accuracy on
short or mixed-language input.
"""

import re

ENGLISH = "English"
SPANISH = "Spanish"
PORTUGUESE = "Portuguese"
FRENCH = "French"
GERMAN = "German"

SAMPLE_CHARS = 500
DIACRITIC_BONUS = 3

# Insertion order is the tie-break order.
_STOPWORDS: dict[str, frozenset[str]] = {
    SPANISH: frozenset(
        "que los las del una con por para como más esta pero sobre entre cuando también puede "
        "tiene desde todo según donde después porque cada hacer sin ser este así "
        "hola estudiar cómo estoy hoy semana bien".split()
    ),
    PORTUGUESE: frozenset(
        "não uma com são mais para como está pode isso pelo muito também onde quando ainda "
        "então sobre depois".split()
    ),
    FRENCH: frozenset(
        "les des une que dans pour avec sur sont pas plus mais comme cette tout être fait "
        "aussi nous même".split()
    ),
    GERMAN: frozenset(
        "und die der das ist ein eine mit auf für nicht auch sich von sind werden hat wird "
        "dass oder".split()
    ),
}

_DIACRITICS: dict[str, re.Pattern[str]] = {
    SPANISH: re.compile(r"[áéíóúñ¿¡]"),
    PORTUGUESE: re.compile(r"[ãõç]"),
    FRENCH: re.compile(r"[àâêëîïôùûüÿçœæ]"),
    GERMAN: re.compile(r"[äöüß]"),
}


def score_languages(text: str) -> dict[str, int]:
    """Stoplist hits per candidate language, plus the diacritic bonus."""
    sample = text[:SAMPLE_CHARS].lower()
    words = sample.split()
    scores = {}
    for language, stopwords in _STOPWORDS.items():
        score = sum(1 for word in words if word in stopwords)
        if _DIACRITICS[language].search(sample):
            score += DIACRITIC_BONUS
        scores[language] = score
    return scores


def detect_language(text: str | None, *, min_length: int = 20, threshold: int = 3) -> str:
    """
    Best-guess language of ``text``, English when unsure.

    Short input (fewer than ``min_length`` characters) and samples whose best
    score is below ``threshold`` fall back to English. Ties go to the
    first-listed candidate (Spanish, Portuguese, French, German).
    """
    if not text or len(text) < min_length:
        return ENGLISH

    scores = score_languages(text)
    best_language, best_score = ENGLISH, -1
    for language, score in scores.items():
        if score > best_score:
            best_language, best_score = language, score

    if best_score < threshold:
        return ENGLISH
    return best_language


def detect_conversational_language(text: str | None) -> str:
    """Lower thresholds for short chat messages."""
    return detect_language(text, min_length=10, threshold=2)


def pick_response_language(message_language: str | None, material_language: str | None) -> str:
    """Prefer the language the student wrote in, then the materials' language."""
    if message_language and message_language != ENGLISH:
        return message_language
    if material_language and material_language != ENGLISH:
        return material_language
    return ENGLISH
