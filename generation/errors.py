"""
Domain errors raised by the variant generation pipeline.

Routers translate these into HTTP responses; nothing inside generation/
catches them.
"""

from typing import Any, Dict, Optional


class GenerationError(Exception):
    """Base class for every failure of a generation run."""


class InvalidConstraintError(GenerationError):
    """Matrix, constraints or batch parameters are unusable. Raised before sampling."""


class InsufficientPoolError(GenerationError):
    """
    A matrix cell asks for more questions than its filtered pool holds.

    `cell` is the originating MatrixCell (None when raised by a bare
    SeededRandom.sample call), `cell_index` its position in the matrix.
    """

    def __init__(
        self,
        required: int,
        available: int,
        cell: Optional[Any] = None,
        cell_index: Optional[int] = None,
        min_difficulty: Optional[float] = None,
        max_difficulty: Optional[float] = None,
    ):
        self.required = required
        self.available = available
        self.cell = cell
        self.cell_index = cell_index
        self.min_difficulty = min_difficulty
        self.max_difficulty = max_difficulty
        super().__init__(self._message())

    def _message(self) -> str:
        if self.cell is None:
            return f"Cannot draw {self.required} item(s) from a pool of {self.available}"
        band = ""
        if self.min_difficulty is not None and self.max_difficulty is not None:
            band = f", difficulty {self.min_difficulty:.2f}-{self.max_difficulty:.2f}"
        return (
            f"Cell taxonomy={self.cell.taxonomy_node_id} cognitive={self.cell.cognitive_level} "
            f"type={self.cell.question_type}{band}: requires {self.required} question(s), "
            f"only {self.available} available"
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "message": str(self),
            "cell_index": self.cell_index,
            "cell": self.cell.model_dump() if self.cell is not None else None,
            "required": self.required,
            "available": self.available,
        }


class MappingReplayError(GenerationError):
    """A stored question mapping does not fit the question snapshot it is replayed against."""
