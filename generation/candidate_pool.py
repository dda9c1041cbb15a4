"""
Step 2 — Candidate Pool

Per-cell filter over one published-question snapshot. No randomness here:
exact match on taxonomy node, cognitive level and question type, plus an
inclusive difficulty band. A pool smaller than the cell quota is reported for
that cell only, so the caller can say exactly which combination is short.
"""

import logging
from dataclasses import dataclass, field
from typing import AbstractSet, List, Optional, Sequence

from generation.errors import InsufficientPoolError
from generation.schemas import BankQuestionBase, GenerationConstraints, MatrixCell

log = logging.getLogger("generation.pipeline")


@dataclass(frozen=True)
class CandidatePool:
    cell: MatrixCell
    cell_index: int
    min_difficulty: float
    max_difficulty: float
    candidates: List[BankQuestionBase] = field(default_factory=list)

    @property
    def size(self) -> int:
        return len(self.candidates)

    def check(self) -> None:
        """Raise InsufficientPoolError if the pool cannot cover the cell quota."""
        if self.size < self.cell.count:
            raise self.shortage()

    def shortage(self) -> InsufficientPoolError:
        return InsufficientPoolError(
            required=self.cell.count,
            available=self.size,
            cell=self.cell,
            cell_index=self.cell_index,
            min_difficulty=self.min_difficulty,
            max_difficulty=self.max_difficulty,
        )


def matches_cell(
    question: BankQuestionBase,
    cell: MatrixCell,
    min_difficulty: float,
    max_difficulty: float,
) -> bool:
    return (
        question.taxonomy_node_id == cell.taxonomy_node_id
        and question.cognitive_level == cell.cognitive_level
        and question.question_type == cell.question_type
        and min_difficulty <= question.difficulty <= max_difficulty
    )


def build_candidate_pool(
    questions: Sequence[BankQuestionBase],
    cell: MatrixCell,
    constraints: GenerationConstraints,
    cell_index: int = 0,
    exclude_ids: Optional[AbstractSet[str]] = None,
) -> CandidatePool:
    """
    Filter the snapshot down to the questions eligible for `cell`.

    exclude_ids: questions already drawn by earlier cells of the same variant.
    Snapshot order is preserved, so the pool (and therefore sampling) is a
    pure function of the snapshot.
    """
    excluded = exclude_ids or frozenset()
    candidates = [
        q for q in questions
        if q.id not in excluded
        and matches_cell(q, cell, constraints.min_difficulty, constraints.max_difficulty)
    ]
    log.debug(
        f"[POOL] cell {cell_index} ({cell.taxonomy_node_id}/{cell.cognitive_level}/"
        f"{cell.question_type}): {len(candidates)} candidate(s) for {cell.count} slot(s)"
    )
    return CandidatePool(
        cell=cell,
        cell_index=cell_index,
        min_difficulty=constraints.min_difficulty,
        max_difficulty=constraints.max_difficulty,
        candidates=candidates,
    )


def check_pools(
    questions: Sequence[BankQuestionBase],
    cells: Sequence[MatrixCell],
    constraints: GenerationConstraints,
) -> List[InsufficientPoolError]:
    """
    Pre-flight check of every cell against the snapshot.

    Returns one InsufficientPoolError per short cell instead of stopping at
    the first, so an exam author sees the whole picture at once. Cells sharing
    a (taxonomy, cognitive, type) triple draw from the same pool, so their
    quotas are checked cumulatively.
    """
    shortages: List[InsufficientPoolError] = []
    claimed: dict = {}
    for idx, cell in enumerate(cells):
        if cell.count <= 0:
            continue
        pool = build_candidate_pool(questions, cell, constraints, cell_index=idx)
        key = (cell.taxonomy_node_id, cell.cognitive_level, cell.question_type)
        already = claimed.get(key, 0)
        available = max(0, pool.size - already)
        if available < cell.count:
            shortages.append(InsufficientPoolError(
                required=cell.count,
                available=available,
                cell=cell,
                cell_index=idx,
                min_difficulty=constraints.min_difficulty,
                max_difficulty=constraints.max_difficulty,
            ))
        claimed[key] = already + cell.count
    return shortages
