"""
Pydantic schemas for the matrix-based variant generator.

Layer 1:  bank question records (tagged union over question types)
Layer 2:  matrix + constraints authored on an exam template
Layer 3:  generation output — composed variants, question mappings, GeneratedExam
"""

from datetime import datetime
from typing import Annotated, Any, ClassVar, Dict, List, Optional, Tuple, Union, Literal

from pydantic import BaseModel, Discriminator, Field, Tag, TypeAdapter, model_validator


# ─── Question types ────────────────────────────────────────────────────────────

MCQ_SINGLE = "MCQ_SINGLE"
MCQ_MULTI = "MCQ_MULTI"
TRUE_FALSE_4 = "TRUE_FALSE_4"
TRUE_FALSE_SIMPLE = "TRUE_FALSE_SIMPLE"
SHORT_ANSWER = "SHORT_ANSWER"
CODING = "CODING"

MCQ_TYPES = (MCQ_SINGLE, MCQ_MULTI)
TRUE_FALSE_TYPES = (TRUE_FALSE_4, TRUE_FALSE_SIMPLE)


# ─── Layer 1: answer data ──────────────────────────────────────────────────────

class McqOption(BaseModel):
    id: str
    content: str
    is_correct: bool = False


class McqAnswerData(BaseModel):
    options: List[McqOption] = Field(default_factory=list)
    explanation: Optional[str] = None


class TrueFalseStatement(BaseModel):
    id: str
    content: str
    is_true: bool


class TrueFalseAnswerData(BaseModel):
    statements: List[TrueFalseStatement] = Field(default_factory=list)
    explanation: Optional[str] = None


class ShortAnswerData(BaseModel):
    correct_answers: List[str] = Field(default_factory=list)
    case_sensitive: bool = False
    explanation: Optional[str] = None


class CodingTestCase(BaseModel):
    id: str
    input: str = ""
    expected_output: str = ""
    is_hidden: bool = False
    description: Optional[str] = None
    weight: Optional[float] = None


class CodingAnswerData(BaseModel):
    languages: List[str] = Field(default_factory=lambda: ["python"])
    default_language: str = "python"
    starter_code: Dict[str, str] = Field(default_factory=dict)
    test_cases: List[CodingTestCase] = Field(default_factory=list)
    time_limit: Optional[int] = None
    memory_limit: Optional[int] = None
    scoring_method: str = "proportional"   # proportional | all-or-nothing | weighted
    explanation: Optional[str] = None


# ─── Layer 1: bank question records ────────────────────────────────────────────

class BankQuestionBase(BaseModel):
    """Fields shared by every published bank question."""
    id: str
    content: str = ""
    taxonomy_node_id: Optional[str] = None
    cognitive_level: Optional[str] = None
    question_type: str
    difficulty: float = Field(0.5, ge=0.0, le=1.0)
    allow_shuffle: bool = True

    # Only question types that structurally carry choices may have them reordered.
    has_orderable_options: ClassVar[bool] = False

    def option_count(self) -> int:
        return 0

    @property
    def matrix_key(self) -> Tuple[Optional[str], Optional[str], str]:
        return (self.taxonomy_node_id, self.cognitive_level, self.question_type)


class McqQuestion(BankQuestionBase):
    question_type: Literal["MCQ_SINGLE", "MCQ_MULTI"]
    answer_data: McqAnswerData = Field(default_factory=McqAnswerData)

    has_orderable_options: ClassVar[bool] = True

    def option_count(self) -> int:
        return len(self.answer_data.options)


class TrueFalseQuestion(BankQuestionBase):
    question_type: Literal["TRUE_FALSE_4", "TRUE_FALSE_SIMPLE"]
    answer_data: TrueFalseAnswerData = Field(default_factory=TrueFalseAnswerData)


class ShortAnswerQuestion(BankQuestionBase):
    question_type: Literal["SHORT_ANSWER"]
    answer_data: ShortAnswerData = Field(default_factory=ShortAnswerData)


class CodingQuestion(BankQuestionBase):
    question_type: Literal["CODING"]
    answer_data: CodingAnswerData = Field(default_factory=CodingAnswerData)


class EssayQuestion(BankQuestionBase):
    """Any type without a structured answer shape (rendered as free-form essay)."""
    answer_data: Dict[str, Any] = Field(default_factory=dict)


_QUESTION_KIND = {
    MCQ_SINGLE: "mcq",
    MCQ_MULTI: "mcq",
    TRUE_FALSE_4: "true_false",
    TRUE_FALSE_SIMPLE: "true_false",
    SHORT_ANSWER: "short_answer",
    CODING: "coding",
}


def _question_kind(value: Any) -> str:
    if isinstance(value, dict):
        qtype = value.get("question_type")
    else:
        qtype = getattr(value, "question_type", None)
    return _QUESTION_KIND.get(qtype, "essay")


BankQuestionRecord = Annotated[
    Union[
        Annotated[McqQuestion, Tag("mcq")],
        Annotated[TrueFalseQuestion, Tag("true_false")],
        Annotated[ShortAnswerQuestion, Tag("short_answer")],
        Annotated[CodingQuestion, Tag("coding")],
        Annotated[EssayQuestion, Tag("essay")],
    ],
    Discriminator(_question_kind),
]

bank_question_list = TypeAdapter(List[BankQuestionRecord])


def parse_bank_questions(rows: List[Dict[str, Any]]) -> List[BankQuestionBase]:
    """Validate raw question dicts into their typed records."""
    return bank_question_list.validate_python(rows)


# ─── Layer 2: matrix + constraints ─────────────────────────────────────────────

class MatrixCell(BaseModel):
    """One quota bucket: taxonomy node × cognitive level × question type."""
    taxonomy_node_id: str
    taxonomy_node_name: Optional[str] = None
    cognitive_level: str
    question_type: str
    count: int = 0
    points: float = 1.0
    available_count: int = 0   # cached pool size at authoring time; re-checked at generation


class MatrixConfig(BaseModel):
    """
    Ordered cells plus cached aggregates.

    total_questions / total_points are a cache of the cells, refreshed on
    construction and on every update_cell(); recompute_totals() rebuilds them.
    """
    cells: List[MatrixCell] = Field(default_factory=list)
    total_questions: int = 0
    total_points: float = 0.0
    duration: int = Field(60, description="Exam duration in minutes")

    @model_validator(mode="after")
    def _refresh_totals(self) -> "MatrixConfig":
        self.total_questions, self.total_points = self.computed_totals()
        return self

    def computed_totals(self) -> Tuple[int, float]:
        total_questions = sum(c.count for c in self.cells)
        total_points = sum(c.count * c.points for c in self.cells)
        return total_questions, total_points

    def recompute_totals(self) -> "MatrixConfig":
        self.total_questions, self.total_points = self.computed_totals()
        return self

    def totals_are_consistent(self) -> bool:
        return (self.total_questions, self.total_points) == self.computed_totals()

    def update_cell(self, index: int, **changes: Any) -> MatrixCell:
        """Replace fields of one cell and refresh the cached totals."""
        cell = self.cells[index].model_copy(update=changes)
        self.cells[index] = cell
        self.recompute_totals()
        return cell

    def add_cell(self, cell: MatrixCell) -> None:
        self.cells.append(cell)
        self.recompute_totals()

    def remove_cell(self, index: int) -> MatrixCell:
        cell = self.cells.pop(index)
        self.recompute_totals()
        return cell

    def used_question_types(self) -> List[str]:
        """Question types of cells that actually draw questions, in matrix order."""
        return list(dict.fromkeys(c.question_type for c in self.cells if c.count > 0))


class SectionConfig(BaseModel):
    """A timed exam part grouping one or more question types."""
    id: str
    name: str
    duration: int = 30   # minutes
    question_types: List[str] = Field(default_factory=list)


class GenerationConstraints(BaseModel):
    allow_shuffle: bool = True
    shuffle_options: bool = True
    min_difficulty: float = 0.0
    max_difficulty: float = 1.0
    is_sectioned: bool = False
    section_config: List[SectionConfig] = Field(default_factory=list)


# ─── Layer 3: generation output ────────────────────────────────────────────────

class QuestionMapping(BaseModel):
    """One output slot: which bank question sits at which 0-based position."""
    bank_question_id: str
    exam_position: int
    option_order: Optional[List[int]] = None   # option_order[k] = authored index shown at k


class SelectedQuestion(BaseModel):
    """A drawn question with the cell it fills and its option permutation."""
    question: BankQuestionRecord
    cell_index: int
    points: float
    option_order: Optional[List[int]] = None


class ExamSection(BaseModel):
    id: str
    name: str
    duration: int
    question_positions: List[int] = Field(default_factory=list)


class ComposedVariant(BaseModel):
    """One variant's ordered questions, before it is bound to a seed/code."""
    questions: List[SelectedQuestion]
    question_mapping: List[QuestionMapping]
    total_questions: int
    total_points: float
    duration: int
    sections: List[ExamSection] = Field(default_factory=list)


class GeneratedExam(BaseModel):
    """Immutable record of one variant; regenerating with `seed` reproduces the mapping."""
    id: str
    template_id: Optional[str] = None
    exam_id: str
    variant_code: str
    seed: int
    question_mapping: List[QuestionMapping]
    created_at: datetime


class VariantResult(BaseModel):
    """GeneratedExam plus the composed variant it was built from."""
    generated_exam: GeneratedExam
    variant: ComposedVariant


class QuestionStats(BaseModel):
    total: int = 0
    by_taxonomy: Dict[str, int] = Field(default_factory=dict)
    by_cognitive_level: Dict[str, int] = Field(default_factory=dict)
    by_type: Dict[str, int] = Field(default_factory=dict)
    # taxonomy -> cognitive level -> question type -> count
    matrix: Dict[str, Dict[str, Dict[str, int]]] = Field(default_factory=dict)
