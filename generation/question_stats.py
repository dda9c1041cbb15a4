"""
Question bank statistics used by the matrix editor.

Counts published questions per taxonomy node, cognitive level and type, and
the full taxonomy → cognitive level → type matrix that fills each cell's
available_count.
"""

from typing import List, Sequence

from generation.candidate_pool import check_pools
from generation.errors import InsufficientPoolError
from generation.schemas import BankQuestionBase, GenerationConstraints, MatrixConfig, QuestionStats

UNCATEGORIZED = "uncategorized"


def build_question_stats(questions: Sequence[BankQuestionBase]) -> QuestionStats:
    stats = QuestionStats(total=len(questions))
    for q in questions:
        taxonomy_id = q.taxonomy_node_id or UNCATEGORIZED
        cognitive = q.cognitive_level or UNCATEGORIZED
        qtype = q.question_type

        stats.by_taxonomy[taxonomy_id] = stats.by_taxonomy.get(taxonomy_id, 0) + 1
        stats.by_cognitive_level[cognitive] = stats.by_cognitive_level.get(cognitive, 0) + 1
        stats.by_type[qtype] = stats.by_type.get(qtype, 0) + 1

        by_type = stats.matrix.setdefault(taxonomy_id, {}).setdefault(cognitive, {})
        by_type[qtype] = by_type.get(qtype, 0) + 1
    return stats


def available_for(stats: QuestionStats, taxonomy_node_id: str, cognitive_level: str, question_type: str) -> int:
    return stats.matrix.get(taxonomy_node_id, {}).get(cognitive_level, {}).get(question_type, 0)


def fill_available_counts(matrix_config: MatrixConfig, stats: QuestionStats) -> MatrixConfig:
    """Copy of the matrix with every cell's available_count refreshed from `stats`."""
    cells = [
        cell.model_copy(update={
            "available_count": available_for(
                stats, cell.taxonomy_node_id, cell.cognitive_level, cell.question_type,
            ),
        })
        for cell in matrix_config.cells
    ]
    return MatrixConfig(cells=cells, duration=matrix_config.duration)


def check_matrix_against_pool(
    matrix_config: MatrixConfig,
    constraints: GenerationConstraints,
    questions: Sequence[BankQuestionBase],
) -> List[InsufficientPoolError]:
    """Every under-stocked cell (difficulty band applied), empty when the matrix can be generated."""
    return check_pools(questions, matrix_config.cells, constraints)
