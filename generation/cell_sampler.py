"""
Step 3 — Cell Sampler

Draws exactly `cell.count` distinct questions from one candidate pool.
Without replacement inside a variant, independent across variants: the same
bank question may appear in several variants of one batch.
"""

from typing import List

from generation.candidate_pool import CandidatePool
from generation.schemas import BankQuestionBase
from generation.seeded_random import SeededRandom


def sample_cell(pool: CandidatePool, rng: SeededRandom) -> List[BankQuestionBase]:
    """
    Either returns exactly pool.cell.count questions or raises
    InsufficientPoolError carrying the cell; never a short draw.
    """
    pool.check()
    return rng.sample(pool.candidates, pool.cell.count)
