"""
Step 4 — Variant Composer

Builds one variant from a matrix, a constraint set and one SeededRandom:

1. Candidate pool → cell sampler for every cell (matrix order)
2. Concatenate cell draws — matrix declaration order is the baseline
3. allow_shuffle: one shuffle over the whole exam, hiding cell boundaries
4. Sectioned exams: stable regroup by section
5. shuffle_options: per-question option permutation for choice types
6. Aggregate totals, which must equal the matrix totals

The random stream is consumed in exactly this order, which is what makes a
stored seed sufficient to rebuild the variant.
"""

import logging
import math
from typing import List, Sequence, Set

from generation.candidate_pool import build_candidate_pool
from generation.cell_sampler import sample_cell
from generation.errors import GenerationError, InvalidConstraintError
from generation.schemas import (
    BankQuestionBase, ComposedVariant, GenerationConstraints, MatrixConfig,
    QuestionMapping, SelectedQuestion,
)
from generation.sections import (
    build_exam_sections, order_by_sections, sectioned_duration, validate_sections,
)
from generation.seeded_random import SeededRandom

log = logging.getLogger("generation.pipeline")


def validate_constraints(matrix_config: MatrixConfig, constraints: GenerationConstraints) -> None:
    """Fail fast on unusable input; nothing has been sampled yet."""
    lo, hi = constraints.min_difficulty, constraints.max_difficulty
    if not (0.0 <= lo <= 1.0 and 0.0 <= hi <= 1.0):
        raise InvalidConstraintError(f"Difficulty band must lie within [0, 1], got [{lo}, {hi}]")
    if lo > hi:
        raise InvalidConstraintError(f"min_difficulty {lo} is greater than max_difficulty {hi}")

    for idx, cell in enumerate(matrix_config.cells):
        if cell.count < 0:
            raise InvalidConstraintError(f"Cell {idx} has a negative count ({cell.count})")
        # count == 0 cells are untouched placeholders of the matrix editor
        if cell.count > 0 and cell.points <= 0:
            raise InvalidConstraintError(f"Cell {idx} must award positive points, got {cell.points}")

    total_questions, _ = matrix_config.computed_totals()
    if total_questions == 0:
        raise InvalidConstraintError("Matrix does not request any questions")

    validate_sections(matrix_config, constraints)


def _shuffle_options(selected: SelectedQuestion, rng: SeededRandom) -> SelectedQuestion:
    question = selected.question
    if not question.has_orderable_options or not question.allow_shuffle:
        return selected
    count = question.option_count()
    if count == 0:
        return selected
    order = rng.shuffle(list(range(count)))
    return selected.model_copy(update={"option_order": order})


def compose_variant(
    matrix_config: MatrixConfig,
    constraints: GenerationConstraints,
    questions: Sequence[BankQuestionBase],
    rng: SeededRandom,
) -> ComposedVariant:
    """
    Compose one variant. Raises InsufficientPoolError (with the originating
    cell) if any cell cannot be filled; nothing partial is returned.
    """
    validate_constraints(matrix_config, constraints)

    # Steps 1-2: fill every cell, matrix order as baseline
    drawn_ids: Set[str] = set()
    selected: List[SelectedQuestion] = []
    for idx, cell in enumerate(matrix_config.cells):
        if cell.count == 0:
            continue
        pool = build_candidate_pool(questions, cell, constraints, cell_index=idx, exclude_ids=drawn_ids)
        for q in sample_cell(pool, rng):
            drawn_ids.add(q.id)
            selected.append(SelectedQuestion(question=q, cell_index=idx, points=cell.points))

    # Step 3: whole-exam question order
    if constraints.allow_shuffle:
        selected = rng.shuffle(selected)

    # Step 4: sections regroup positions after the shuffle
    if constraints.is_sectioned:
        selected = order_by_sections(
            selected, constraints.section_config, lambda s: s.question.question_type,
        )

    # Step 5: option permutations, in final exam order
    if constraints.shuffle_options:
        selected = [_shuffle_options(s, rng) for s in selected]

    mapping = [
        QuestionMapping(
            bank_question_id=s.question.id,
            exam_position=position,
            option_order=s.option_order,
        )
        for position, s in enumerate(selected)
    ]

    # Step 6: aggregates are a check against the matrix, not a new source of truth
    total_questions = len(selected)
    total_points = sum(s.points for s in selected)
    expected_questions, expected_points = matrix_config.computed_totals()
    if total_questions != expected_questions or not math.isclose(total_points, expected_points, abs_tol=1e-9):
        raise GenerationError(
            f"Variant totals ({total_questions} questions, {total_points} points) "
            f"do not match the matrix ({expected_questions} questions, {expected_points} points)"
        )

    if constraints.is_sectioned:
        sections = build_exam_sections(
            [s.question.question_type for s in selected], constraints.section_config,
        )
        duration = sectioned_duration(constraints.section_config)
    else:
        sections = []
        duration = matrix_config.duration

    log.debug(
        f"[COMPOSE] seed={rng.seed}: {total_questions} question(s), "
        f"{total_points} point(s), {rng.calls} random draw(s)"
    )

    return ComposedVariant(
        questions=selected,
        question_mapping=mapping,
        total_questions=total_questions,
        total_points=total_points,
        duration=duration,
        sections=sections,
    )
