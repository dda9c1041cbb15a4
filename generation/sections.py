"""
Sectioned exams

A sectioned exam is split into timed parts by question type; test-takers work
through the parts in order. Sectioning runs after the whole-exam shuffle and
only regroups positions, so it never influences which questions are drawn.
"""

import uuid
from typing import Callable, Dict, List, Sequence, TypeVar

from generation.errors import InvalidConstraintError
from generation.schemas import (
    CODING, MCQ_TYPES, TRUE_FALSE_4, ExamSection, GenerationConstraints, MatrixConfig, SectionConfig,
)

T = TypeVar("T")

DEFAULT_SECTION_DURATION = 30
DEFAULT_CODING_DURATION = 60


def default_sections(question_types: Sequence[str]) -> List[SectionConfig]:
    """Initial grouping when sectioning is switched on: choice types, coding, everything else."""
    choice_types = [t for t in question_types if t in MCQ_TYPES or t == TRUE_FALSE_4]
    other_types = [t for t in question_types if t not in choice_types and t != CODING]

    sections: List[SectionConfig] = []
    if choice_types:
        sections.append(SectionConfig(
            id=str(uuid.uuid4()),
            name="Part 1: Multiple choice",
            duration=DEFAULT_SECTION_DURATION,
            question_types=choice_types,
        ))
    if CODING in question_types:
        sections.append(SectionConfig(
            id=str(uuid.uuid4()),
            name=f"Part {len(sections) + 1}: Coding",
            duration=DEFAULT_CODING_DURATION,
            question_types=[CODING],
        ))
    if other_types:
        sections.append(SectionConfig(
            id=str(uuid.uuid4()),
            name=f"Part {len(sections) + 1}: Other",
            duration=DEFAULT_SECTION_DURATION,
            question_types=other_types,
        ))
    if not sections:
        sections.append(SectionConfig(
            id=str(uuid.uuid4()), name="Part 1", duration=DEFAULT_SECTION_DURATION,
        ))
    return sections


def section_index_by_type(sections: Sequence[SectionConfig]) -> Dict[str, int]:
    index: Dict[str, int] = {}
    for pos, section in enumerate(sections):
        for qtype in section.question_types:
            if qtype in index:
                raise InvalidConstraintError(
                    f"Question type {qtype} is assigned to more than one section"
                )
            index[qtype] = pos
    return index


def validate_sections(matrix_config: MatrixConfig, constraints: GenerationConstraints) -> None:
    """Every question type the matrix draws must belong to exactly one section."""
    if not constraints.is_sectioned:
        return
    if not constraints.section_config:
        raise InvalidConstraintError("Sectioned exam requires at least one section")
    for section in constraints.section_config:
        if section.duration <= 0:
            raise InvalidConstraintError(f"Section '{section.name}' must have a positive duration")
    index = section_index_by_type(constraints.section_config)
    unassigned = [t for t in matrix_config.used_question_types() if t not in index]
    if unassigned:
        raise InvalidConstraintError(
            f"Question type(s) not assigned to any section: {', '.join(unassigned)}"
        )


def order_by_sections(
    items: Sequence[T],
    sections: Sequence[SectionConfig],
    type_of: Callable[[T], str],
) -> List[T]:
    """Stable regroup by section order; order inside a section is kept."""
    index = section_index_by_type(sections)
    return sorted(items, key=lambda item: index[type_of(item)])


def build_exam_sections(
    question_types: Sequence[str],
    sections: Sequence[SectionConfig],
) -> List[ExamSection]:
    """question_types: type of the question at each exam position, in order."""
    index = section_index_by_type(sections)
    result = [
        ExamSection(id=s.id, name=s.name, duration=s.duration)
        for s in sections
    ]
    for position, qtype in enumerate(question_types):
        result[index[qtype]].question_positions.append(position)
    return result


def sectioned_duration(sections: Sequence[SectionConfig]) -> int:
    return sum(s.duration for s in sections)
