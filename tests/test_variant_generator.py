import pytest

from generation.errors import InsufficientPoolError, InvalidConstraintError
from generation.schemas import ComposedVariant, MatrixCell, MatrixConfig
from generation.seeded_random import MODULUS
from generation import variant_generator
from generation.variant_generator import (
    derive_seed, generate_variant_set, generate_variants, regenerate_variant, variant_code,
)


def test_three_variants_from_seed_42(one_cell_matrix, mcq_bank, shuffle_all):
    exams = generate_variants(one_cell_matrix, shuffle_all, 3, 42, mcq_bank)

    assert [e.variant_code for e in exams] == ["001", "002", "003"]
    assert [e.seed for e in exams] == [42, 43, 44]
    pool_ids = {q.id for q in mcq_bank}
    for exam in exams:
        assert len(exam.question_mapping) == 5
        assert {m.bank_question_id for m in exam.question_mapping} <= pool_ids
        assert len({m.bank_question_id for m in exam.question_mapping}) == 5

    again = generate_variants(one_cell_matrix, shuffle_all, 3, 42, mcq_bank)
    assert [e.question_mapping for e in again] == [e.question_mapping for e in exams]


def test_variant_set_carries_totals(one_cell_matrix, mcq_bank, shuffle_all):
    results = generate_variant_set(one_cell_matrix, shuffle_all, 3, mcq_bank, base_seed=42)
    for result in results:
        assert result.variant.total_questions == 5
        assert result.variant.total_points == 10
        assert result.variant.duration == 45
        assert result.generated_exam.question_mapping == result.variant.question_mapping


def test_records_get_distinct_ids(one_cell_matrix, mcq_bank, shuffle_all):
    exams = generate_variants(one_cell_matrix, shuffle_all, 4, 7, mcq_bank, template_id="tpl-1")
    assert len({e.id for e in exams}) == 4
    assert len({e.exam_id for e in exams}) == 4
    assert all(e.template_id == "tpl-1" for e in exams)
    assert all(e.created_at.tzinfo is not None for e in exams)


def test_variants_may_reuse_the_same_questions(one_cell_matrix, make_questions, mcq_row, shuffle_all):
    questions = make_questions([mcq_row(f"only{i}") for i in range(5)])
    exams = generate_variants(one_cell_matrix, shuffle_all, 3, 100, questions)
    for exam in exams:
        assert sorted(m.bank_question_id for m in exam.question_mapping) == sorted(q.id for q in questions)


@pytest.mark.parametrize("count", [0, -1])
def test_non_positive_variant_count_is_rejected(one_cell_matrix, mcq_bank, shuffle_all, count):
    with pytest.raises(InvalidConstraintError):
        generate_variants(one_cell_matrix, shuffle_all, count, 42, mcq_bank)


@pytest.mark.parametrize("count", [1.5, "3", True])
def test_variant_count_must_be_an_integer(one_cell_matrix, mcq_bank, shuffle_all, count):
    with pytest.raises(InvalidConstraintError):
        generate_variants(one_cell_matrix, shuffle_all, count, 42, mcq_bank)


@pytest.mark.parametrize("base_seed", [-1, MODULUS, 2.0])
def test_base_seed_outside_32_bits_is_rejected(one_cell_matrix, mcq_bank, shuffle_all, base_seed):
    with pytest.raises(InvalidConstraintError):
        generate_variants(one_cell_matrix, shuffle_all, 1, base_seed, mcq_bank)


def test_pool_exhaustion_aborts_the_batch(make_questions, mcq_row, shuffle_all):
    questions = make_questions([mcq_row(f"s{i}") for i in range(7)])
    matrix = MatrixConfig(cells=[
        MatrixCell(taxonomy_node_id="A1", cognitive_level="remember", question_type="MCQ_SINGLE", count=10, points=1),
    ])
    with pytest.raises(InsufficientPoolError) as exc:
        generate_variants(matrix, shuffle_all, 3, 42, questions)
    assert exc.value.required == 10
    assert exc.value.available == 7
    assert exc.value.cell_index == 0


def test_seed_derivation_wraps_around(one_cell_matrix, mcq_bank, shuffle_all):
    exams = generate_variants(one_cell_matrix, shuffle_all, 2, MODULUS - 1, mcq_bank)
    assert [e.seed for e in exams] == [MODULUS - 1, 0]
    assert derive_seed(MODULUS - 1, 1) == 0
    assert derive_seed(10, 5) == 15


def test_missing_base_seed_comes_from_the_clock(one_cell_matrix, mcq_bank, shuffle_all, monkeypatch):
    monkeypatch.setattr(variant_generator.time, "time", lambda: 1700000000.123)
    exams = generate_variants(one_cell_matrix, shuffle_all, 2, None, mcq_bank)
    expected = int(1700000000.123 * 1000) % MODULUS
    assert [e.seed for e in exams] == [expected, (expected + 1) % MODULUS]


def test_regenerate_reproduces_a_stored_variant(mixed_matrix, mixed_bank, shuffle_all):
    exams = generate_variants(mixed_matrix, shuffle_all, 3, 900, mixed_bank)
    for exam in exams:
        rebuilt = regenerate_variant(mixed_matrix, shuffle_all, mixed_bank, exam.seed)
        assert isinstance(rebuilt, ComposedVariant)
        assert rebuilt.question_mapping == exam.question_mapping


def test_variant_code_padding():
    assert variant_code(0) == "001"
    assert variant_code(9) == "010"
    assert variant_code(999) == "1000"
