"""
Step 5 — Variant Set Generator

Composes N variants of one template from a single question snapshot.

- seed_i = (base_seed + i) mod 2^32, so (base_seed, count) reproduces the set
- variant codes "001", "002", ... in generation order (opaque labels)
- all-or-nothing: any failure aborts the batch before anything is returned
- coincident variants are not deduplicated
"""

import logging
import time
import uuid
from datetime import datetime, timezone
from typing import List, Optional, Sequence

from generation.errors import InvalidConstraintError
from generation.schemas import (
    BankQuestionBase, ComposedVariant, GeneratedExam, GenerationConstraints, MatrixConfig, VariantResult,
)
from generation.seeded_random import MODULUS, SeededRandom
from generation.variant_composer import compose_variant, validate_constraints

log = logging.getLogger("generation.pipeline")

VARIANT_CODE_WIDTH = 3


def variant_code(index: int) -> str:
    """0-based index → zero-padded 1-based label ("001")."""
    return str(index + 1).zfill(VARIANT_CODE_WIDTH)


def derive_seed(base_seed: int, index: int) -> int:
    return (base_seed + index) % MODULUS


def seed_from_clock() -> int:
    return int(time.time() * 1000) % MODULUS


def _validate_batch(variant_count: int, base_seed: int) -> None:
    if isinstance(variant_count, bool) or not isinstance(variant_count, int):
        raise InvalidConstraintError(f"variant_count must be an integer, got {variant_count!r}")
    if variant_count <= 0:
        raise InvalidConstraintError(f"variant_count must be at least 1, got {variant_count}")
    if isinstance(base_seed, bool) or not isinstance(base_seed, int) or not 0 <= base_seed < MODULUS:
        raise InvalidConstraintError(f"base_seed must be a 32-bit unsigned integer, got {base_seed!r}")


def generate_variant_set(
    matrix_config: MatrixConfig,
    constraints: GenerationConstraints,
    variant_count: int,
    questions: Sequence[BankQuestionBase],
    base_seed: Optional[int] = None,
    template_id: Optional[str] = None,
) -> List[VariantResult]:
    """
    Compose `variant_count` variants and bind each to its seed and code.

    questions: one immutable snapshot of the published bank, fetched by the
    caller before the batch starts.

    Raises InvalidConstraintError before sampling, InsufficientPoolError from
    the first short cell; in both cases no result is returned.
    """
    if base_seed is None:
        base_seed = seed_from_clock()
    _validate_batch(variant_count, base_seed)
    validate_constraints(matrix_config, constraints)

    snapshot = tuple(questions)
    log.info(
        f"[GENERATE] template={template_id} variants={variant_count} base_seed={base_seed} "
        f"cells={len(matrix_config.cells)} pool={len(snapshot)}"
    )

    results: List[VariantResult] = []
    for i in range(variant_count):
        seed = derive_seed(base_seed, i)
        variant = compose_variant(matrix_config, constraints, snapshot, SeededRandom(seed))
        generated = GeneratedExam(
            id=str(uuid.uuid4()),
            template_id=template_id,
            exam_id=str(uuid.uuid4()),
            variant_code=variant_code(i),
            seed=seed,
            question_mapping=variant.question_mapping,
            created_at=datetime.now(timezone.utc),
        )
        results.append(VariantResult(generated_exam=generated, variant=variant))

    log.info(f"[GENERATE] OK — {len(results)} variant(s), {matrix_config.computed_totals()[0]} question(s) each")
    return results


def generate_variants(
    matrix_config: MatrixConfig,
    constraints: GenerationConstraints,
    variant_count: int,
    base_seed: Optional[int],
    questions: Sequence[BankQuestionBase],
    template_id: Optional[str] = None,
) -> List[GeneratedExam]:
    """Service entry point: GeneratedExam records only."""
    results = generate_variant_set(
        matrix_config, constraints, variant_count, questions,
        base_seed=base_seed, template_id=template_id,
    )
    return [r.generated_exam for r in results]


def regenerate_variant(
    matrix_config: MatrixConfig,
    constraints: GenerationConstraints,
    questions: Sequence[BankQuestionBase],
    seed: int,
) -> ComposedVariant:
    """Recompose a single stored variant from its seed (audit / provenance check)."""
    return compose_variant(matrix_config, constraints, tuple(questions), SeededRandom(seed))
