import pytest

from generation.candidate_pool import build_candidate_pool, check_pools, matches_cell
from generation.cell_sampler import sample_cell
from generation.errors import InsufficientPoolError
from generation.schemas import GenerationConstraints, MatrixCell
from generation.seeded_random import SeededRandom


def _cell(count=3, taxonomy="A1", cognitive="remember", qtype="MCQ_SINGLE"):
    return MatrixCell(
        taxonomy_node_id=taxonomy, cognitive_level=cognitive, question_type=qtype,
        count=count, points=1,
    )


def test_pool_matches_taxonomy_cognitive_and_type_exactly(mixed_bank):
    pool = build_candidate_pool(mixed_bank, _cell(cognitive="understand"), GenerationConstraints())
    assert [q.id for q in pool.candidates] == ["und0", "und1", "und2", "und3"]
    assert pool.size == 4


def test_pool_is_empty_for_unknown_cell(mixed_bank):
    pool = build_candidate_pool(mixed_bank, _cell(taxonomy="Z9"), GenerationConstraints())
    assert pool.candidates == []


def test_difficulty_band_is_inclusive(make_questions, mcq_row):
    questions = make_questions([
        mcq_row("low", difficulty=0.29),
        mcq_row("edge-low", difficulty=0.3),
        mcq_row("mid", difficulty=0.5),
        mcq_row("edge-high", difficulty=0.7),
        mcq_row("high", difficulty=0.71),
    ])
    constraints = GenerationConstraints(min_difficulty=0.3, max_difficulty=0.7)
    pool = build_candidate_pool(questions, _cell(), constraints)
    assert [q.id for q in pool.candidates] == ["edge-low", "mid", "edge-high"]


def test_pool_preserves_snapshot_order(mcq_bank):
    pool = build_candidate_pool(mcq_bank, _cell(), GenerationConstraints())
    assert [q.id for q in pool.candidates] == [q.id for q in mcq_bank]


def test_excluded_ids_are_left_out(mcq_bank):
    pool = build_candidate_pool(
        mcq_bank, _cell(), GenerationConstraints(), exclude_ids={"q00", "q05"},
    )
    assert "q00" not in [q.id for q in pool.candidates]
    assert pool.size == 10


def test_short_pool_reports_its_cell(mcq_bank):
    cell = _cell(count=13)
    pool = build_candidate_pool(mcq_bank, cell, GenerationConstraints(), cell_index=4)
    with pytest.raises(InsufficientPoolError) as exc:
        pool.check()
    assert exc.value.cell == cell
    assert exc.value.cell_index == 4
    assert exc.value.required == 13
    assert exc.value.available == 12
    assert "taxonomy=A1" in str(exc.value)


def test_matches_cell_requires_every_field(mcq_bank):
    question = mcq_bank[0]
    assert matches_cell(question, _cell(), 0.0, 1.0)
    assert not matches_cell(question, _cell(qtype="MCQ_MULTI"), 0.0, 1.0)
    assert not matches_cell(question, _cell(), 0.5, 1.0)


def test_check_pools_reports_every_short_cell(mixed_bank):
    cells = [
        _cell(count=7),                                          # 6 available
        _cell(count=2, cognitive="understand"),                  # fine
        _cell(count=1, taxonomy="Z9"),                           # 0 available
        _cell(count=0, taxonomy="Z9", cognitive="apply"),        # placeholder, ignored
    ]
    shortages = check_pools(mixed_bank, cells, GenerationConstraints())
    assert [(s.cell_index, s.required, s.available) for s in shortages] == [(0, 7, 6), (2, 1, 0)]


def test_check_pools_counts_repeated_cells_cumulatively(mixed_bank):
    cells = [_cell(count=4), _cell(count=3)]
    shortages = check_pools(mixed_bank, cells, GenerationConstraints())
    assert len(shortages) == 1
    assert (shortages[0].cell_index, shortages[0].required, shortages[0].available) == (1, 3, 2)


# ─── Cell sampler ──────────────────────────────────────────────────────────────

def test_sampler_draws_exact_count_of_distinct_questions(mcq_bank):
    pool = build_candidate_pool(mcq_bank, _cell(count=5), GenerationConstraints())
    drawn = sample_cell(pool, SeededRandom(11))
    assert len(drawn) == 5
    assert len({q.id for q in drawn}) == 5
    assert {q.id for q in drawn} <= {q.id for q in pool.candidates}


def test_sampler_is_deterministic_per_seed(mcq_bank):
    pool = build_candidate_pool(mcq_bank, _cell(count=5), GenerationConstraints())
    first = [q.id for q in sample_cell(pool, SeededRandom(99))]
    second = [q.id for q in sample_cell(pool, SeededRandom(99))]
    assert first == second


def test_sampler_follows_the_seeded_shuffle(mcq_bank):
    pool = build_candidate_pool(mcq_bank[:5], _cell(count=2), GenerationConstraints())
    assert [q.id for q in sample_cell(pool, SeededRandom(42))] == ["q02", "q03"]


def test_sampler_raises_instead_of_short_draw(make_questions, mcq_row):
    questions = make_questions([mcq_row(f"s{i}") for i in range(7)])
    cell = _cell(count=10)
    pool = build_candidate_pool(questions, cell, GenerationConstraints())
    rng = SeededRandom(1)
    with pytest.raises(InsufficientPoolError) as exc:
        sample_cell(pool, rng)
    assert exc.value.required == 10
    assert exc.value.available == 7
    assert exc.value.cell == cell
    assert rng.calls == 0
