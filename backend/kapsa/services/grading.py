"""
Quiz grading.

Evaluation first asks the text model to grade every answer in one batched,
lenient call. If that call or its JSON fails for any reason, grading falls
back to a deterministic case-insensitive exact/substring comparison so the
student always gets a result.
"""

import logging
from dataclasses import dataclass

from kapsa.errors import KapsaError
from kapsa.services.language import ENGLISH, FRENCH, GERMAN, PORTUGUESE, SPANISH
from kapsa.services.inference import inference_client
from kapsa.services.normalizer import parse_json_array
from kapsa.services.sanitize import clean_evaluation

logger = logging.getLogger(__name__)

GRADE_TABLE: list[tuple[float, str]] = [
    (0.97, "A+"),
    (0.93, "A"),
    (0.90, "A-"),
    (0.87, "B+"),
    (0.83, "B"),
    (0.80, "B-"),
    (0.77, "C+"),
    (0.73, "C"),
    (0.70, "C-"),
    (0.67, "D+"),
    (0.60, "D"),
]

# Bands: >= 0.9, >= 0.7, >= 0.5, below
MOTIVATION: dict[str, tuple[str, str, str, str]] = {
    ENGLISH: (
        "Outstanding work! You've mastered this material.",
        "Great effort! Focus on the areas you missed to improve even more.",
        "Good start! Review the missed topics and try again.",
        "Keep studying! Review the materials and practice more.",
    ),
    SPANISH: (
        "¡Trabajo excepcional! Dominaste este material.",
        "¡Muy bien! Enfocate en las áreas que fallaste para mejorar aún más.",
        "¡Buen comienzo! Repasá los temas que fallaste e intentá de nuevo.",
        "¡Seguí estudiando! Revisá los materiales y practicá más.",
    ),
    PORTUGUESE: (
        "Trabalho excelente! Você dominou este material.",
        "Ótimo esforço! Foque nas áreas que errou para melhorar ainda mais.",
        "Bom começo! Revise os tópicos e tente novamente.",
        "Continue estudando! Revise os materiais e pratique mais.",
    ),
    FRENCH: (
        "Travail exceptionnel ! Vous maîtrisez ce contenu.",
        "Très bel effort ! Concentrez-vous sur les points manqués pour progresser encore.",
        "Bon début ! Revoyez les sujets manqués et réessayez.",
        "Continuez à étudier ! Relisez les supports et entraînez-vous davantage.",
    ),
    GERMAN: (
        "Hervorragende Arbeit! Du beherrschst diesen Stoff.",
        "Starke Leistung! Konzentriere dich auf die verpassten Themen, um dich weiter zu verbessern.",
        "Guter Anfang! Wiederhole die verpassten Themen und versuche es erneut.",
        "Lern weiter! Geh die Materialien noch einmal durch und übe mehr.",
    ),
}

# (correct, incorrect) when the model omits an insight
DEFAULT_INSIGHTS: dict[str, tuple[str, str]] = {
    ENGLISH: ("Correct! Great job.", "Review this topic."),
    SPANISH: ("¡Correcto! Buen trabajo.", "Revisa este tema."),
    PORTUGUESE: ("Correto! Bom trabalho.", "Revise este tema."),
    FRENCH: ("Correct ! Bon travail.", "Revoyez ce sujet."),
    GERMAN: ("Richtig! Gut gemacht.", "Wiederhole dieses Thema."),
}

# (correct, incorrect) on the deterministic fallback path
FALLBACK_INSIGHTS: dict[str, tuple[str, str]] = {
    ENGLISH: ("Correct! Great job.", "Review this topic for better understanding."),
    SPANISH: ("¡Correcto! Buen trabajo.", "Revisa este tema para mejorar tu comprensión."),
    PORTUGUESE: ("Correto! Bom trabalho.", "Revise este tema para entendê-lo melhor."),
    FRENCH: ("Correct ! Bon travail.", "Revoyez ce sujet pour mieux le comprendre."),
    GERMAN: ("Richtig! Gut gemacht.", "Wiederhole dieses Thema, um es besser zu verstehen."),
}


@dataclass
class GradedAnswer:
    question_id: object
    user_answer: str
    is_correct: bool
    ai_insight: str


def calculate_grade(score: float) -> str:
    for threshold, grade in GRADE_TABLE:
        if score >= threshold:
            return grade
    return "F"


def motivation_text(score: float, language: str) -> str:
    messages = MOTIVATION.get(language, MOTIVATION[ENGLISH])
    if score >= 0.9:
        return messages[0]
    if score >= 0.7:
        return messages[1]
    if score >= 0.5:
        return messages[2]
    return messages[3]


def answers_match(user_answer: str, correct_answer: str) -> bool:
    """Case-insensitive exact or substring match. An empty answer never matches."""
    user = user_answer.strip().lower()
    correct = correct_answer.strip().lower()
    if not user:
        return False
    return user == correct or user in correct


def build_evaluation_prompts(questions: list, answers: dict, language: str) -> tuple[str, str]:
    """Return (system_prompt, prompt) for the batched grading call."""
    system_prompt = f"""You are a fair and encouraging study tutor evaluating a student's quiz answers.

CRITICAL: Respond in {language}.

For each question, evaluate if the student's answer demonstrates understanding of the concept, even if the wording differs from the correct answer. Be lenient: if the student shows they understand the key concept, mark it as correct.

For each question, provide:
- is_correct: true/false (true if the student demonstrates understanding)
- ai_insight: A brief 1-2 sentence insight in {language}. For correct answers, praise briefly. For wrong answers, explain why it's wrong and help them remember the correct answer.

IMPORTANT: Output ONLY a valid JSON array with objects like: [{{"is_correct": true, "ai_insight": "..."}}]
One object per question, in order. No markdown, no explanation outside the JSON."""

    blocks = [
        f"Q{i}: {q.question}\nCorrect Answer: {q.correct_answer}\nStudent Answer: {answers.get(q.id, '')}"
        for i, q in enumerate(questions, start=1)
    ]
    prompt = (
        f"Evaluate these {len(questions)} student answers:\n\n"
        + "\n\n".join(blocks)
        + "\n\nOutput the JSON array now:"
    )
    return system_prompt, prompt


def grade_with_fallback(questions: list, answers: dict, language: str) -> list[GradedAnswer]:
    correct_insight, wrong_insight = FALLBACK_INSIGHTS.get(language, FALLBACK_INSIGHTS[ENGLISH])
    graded = []
    for q in questions:
        user_answer = answers.get(q.id, "")
        is_correct = answers_match(user_answer, q.correct_answer)
        graded.append(
            GradedAnswer(
                question_id=q.id,
                user_answer=user_answer,
                is_correct=is_correct,
                ai_insight=correct_insight if is_correct else wrong_insight,
            )
        )
    return graded


async def grade_with_model(questions: list, answers: dict, language: str) -> list[GradedAnswer]:
    """
    Grade every answer in one model call.

    A question with no matching evaluation entry is graded incorrect.
    """
    system_prompt, prompt = build_evaluation_prompts(questions, answers, language)
    raw = await inference_client.generate_text(prompt, system_prompt=system_prompt)
    evaluations = parse_json_array(raw)

    correct_insight, wrong_insight = DEFAULT_INSIGHTS.get(language, DEFAULT_INSIGHTS[ENGLISH])
    graded = []
    for i, q in enumerate(questions):
        result = clean_evaluation(evaluations[i] if i < len(evaluations) else None)
        is_correct = result["is_correct"]
        graded.append(
            GradedAnswer(
                question_id=q.id,
                user_answer=answers.get(q.id, ""),
                is_correct=is_correct,
                ai_insight=result["ai_insight"] or (correct_insight if is_correct else wrong_insight),
            )
        )
    return graded


async def grade_answers(questions: list, answers: dict, language: str) -> list[GradedAnswer]:
    """AI grading, falling back to string matching on any model or parse failure."""
    if not questions:
        return []
    try:
        return await grade_with_model(questions, answers, language)
    except KapsaError as e:
        logger.warning("AI grading failed (%s), falling back to string matching", e.message)
    except Exception:
        logger.exception("Unexpected error during AI grading, falling back to string matching")
    return grade_with_fallback(questions, answers, language)
