"""Tests for heuristic language detection."""

import pytest

from kapsa.services.language import (
    ENGLISH,
    FRENCH,
    GERMAN,
    PORTUGUESE,
    SPANISH,
    detect_conversational_language,
    detect_language,
    pick_response_language,
)


@pytest.mark.parametrize(
    "text,expected",
    [
        (
            "La mitocondria es el orgánulo que produce energía para la célula y también regula el metabolismo",
            SPANISH,
        ),
        (
            "Você não sabe que a célula é uma estrutura muito importante para a vida",
            PORTUGUESE,
        ),
        (
            "Die Zelle ist die kleinste Einheit und das ist für alle Lebewesen wichtig",
            GERMAN,
        ),
        (
            "Les cellules sont des unités dans le corps pour la vie mais aussi plus que ça",
            FRENCH,
        ),
        ("The cell is the basic structural unit of all known living organisms.", ENGLISH),
    ],
)
def test_detect_language(text, expected):
    assert detect_language(text) == expected


def test_short_text_is_english():
    assert detect_language("hola qué tal") == ENGLISH
    assert detect_language("") == ENGLISH
    assert detect_language(None) == ENGLISH


def test_ties_go_to_first_listed_language():
    # "para" is a Spanish and a Portuguese stopword
    assert detect_language("para para para estudio") == SPANISH


def test_conversational_thresholds_are_lower():
    assert detect_language("hola cómo estás") == ENGLISH
    assert detect_conversational_language("hola cómo estás") == SPANISH


@pytest.mark.parametrize(
    "message,material,expected",
    [
        (SPANISH, ENGLISH, SPANISH),
        (ENGLISH, PORTUGUESE, PORTUGUESE),
        (FRENCH, SPANISH, FRENCH),
        (ENGLISH, ENGLISH, ENGLISH),
        (None, None, ENGLISH),
    ],
)
def test_pick_response_language(message, material, expected):
    assert pick_response_language(message, material) == expected
