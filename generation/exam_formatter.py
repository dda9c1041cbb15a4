"""
Exam Formatter — bank record → test-taker view, and audit replay.

The question mapping is enough to rebuild what a test-taker saw: positions
come from exam_position, option order from option_order. No random stream is
involved in replay.
"""

from typing import Any, Dict, List, Mapping, Optional, Sequence

from generation.errors import MappingReplayError
from generation.schemas import (
    MCQ_SINGLE, BankQuestionBase, CodingQuestion, ComposedVariant,
    McqQuestion, QuestionMapping, ShortAnswerQuestion, TrueFalseQuestion,
)


def _apply_option_order(options: list, option_order: Optional[List[int]]) -> list:
    if not option_order:
        return list(options)
    if sorted(option_order) != list(range(len(options))):
        raise MappingReplayError(
            f"option_order {option_order} is not a permutation of {len(options)} option(s)"
        )
    return [options[i] for i in option_order]


def to_exam_question(
    question: BankQuestionBase,
    position: int,
    points: float,
    option_order: Optional[List[int]] = None,
) -> Dict[str, Any]:
    """
    Render one bank question as the test-taker sees it.

    Correctness travels with the option object: correct_answer holds option
    ids, so reordering never changes which answer is right.
    """
    base = {
        "position": position,
        "bank_question_id": question.id,
        "content": question.content,
        "points": points,
    }

    if isinstance(question, McqQuestion):
        options = _apply_option_order(question.answer_data.options, option_order)
        correct = [opt.id for opt in options if opt.is_correct]
        return {
            **base,
            "type": "multiple-choice",
            "options": [{"id": opt.id, "text": opt.content} for opt in options],
            "correct_answer": (correct[0] if correct else None) if question.question_type == MCQ_SINGLE else correct,
        }

    if isinstance(question, TrueFalseQuestion):
        statements = question.answer_data.statements
        return {
            **base,
            "type": "true-false",
            "statements": [{"id": s.id, "text": s.content} for s in statements],
            "correct_answer": {s.id: s.is_true for s in statements},
        }

    if isinstance(question, ShortAnswerQuestion):
        answers = question.answer_data.correct_answers
        return {
            **base,
            "type": "short-answer",
            "correct_answer": answers[0] if answers else "",
            "accepted_answers": list(answers),
            "case_sensitive": question.answer_data.case_sensitive,
        }

    if isinstance(question, CodingQuestion):
        data = question.answer_data
        return {
            **base,
            "type": "coding",
            "coding": {
                "languages": data.languages,
                "default_language": data.default_language,
                "starter_code": data.starter_code,
                "test_cases": [tc.model_dump() for tc in data.test_cases],
                "time_limit": data.time_limit,
                "memory_limit": data.memory_limit,
                "scoring_method": data.scoring_method,
            },
        }

    return {**base, "type": "essay"}


def render_variant(variant: ComposedVariant) -> List[Dict[str, Any]]:
    return [
        to_exam_question(s.question, position, s.points, s.option_order)
        for position, s in enumerate(variant.questions)
    ]


def points_by_position(rendered_questions: Sequence[Mapping[str, Any]]) -> Dict[int, float]:
    """Per-slot points of a delivered exam; slots of repeated cells may award different points."""
    return {q["position"]: q["points"] for q in rendered_questions}


def replay_mapping(
    question_mapping: Sequence[QuestionMapping],
    questions: Sequence[BankQuestionBase],
    points: Optional[Mapping[int, float]] = None,
) -> List[Dict[str, Any]]:
    """
    Rebuild a variant exactly as delivered, from its mapping and the bank
    records it references.

    points: exam_position -> points awarded at that slot.
    """
    by_id = {q.id: q for q in questions}
    points = points or {}

    rendered = []
    for entry in sorted(question_mapping, key=lambda m: m.exam_position):
        question = by_id.get(entry.bank_question_id)
        if question is None:
            raise MappingReplayError(
                f"Bank question {entry.bank_question_id} at position {entry.exam_position} "
                f"no longer exists"
            )
        if entry.option_order is not None and not question.has_orderable_options:
            raise MappingReplayError(
                f"Bank question {question.id} ({question.question_type}) has no orderable options"
            )
        rendered.append(to_exam_question(
            question,
            entry.exam_position,
            points.get(entry.exam_position, 0.0),
            entry.option_order,
        ))
    return rendered
