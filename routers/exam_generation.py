"""
Exam Generation Router

Matrix-based variant generation for exam templates.
Endpoints:
  POST /exam-templates                     — save a matrix + constraints template
  GET  /exam-templates                     — list templates
  GET  /exam-templates/{id}                — template detail
  GET  /exam-templates/{id}/stats          — bank statistics + under-stocked cells
  POST /exam-templates/{id}/generate       — generate and store N variants (all-or-nothing)
  GET  /exam-templates/{id}/variants       — stored variants of a template
  GET  /generated-exams/{id}/replay        — rebuild a delivered variant from its mapping
  POST /generation/preview                 — stateless generation over an inline pool
"""

import logging
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from pydantic import BaseModel, Field
from sqlalchemy.orm import Session

from config import LOG_LEVEL, MAX_VARIANT_COUNT
from database import crud, models
from database.database import get_db
from generation.errors import InsufficientPoolError, InvalidConstraintError, MappingReplayError
from generation.exam_formatter import points_by_position, render_variant, replay_mapping
from generation.question_stats import build_question_stats, check_matrix_against_pool, fill_available_counts
from generation.schemas import BankQuestionRecord, GenerationConstraints, MatrixConfig
from generation.variant_composer import validate_constraints
from generation.variant_generator import generate_variant_set

router = APIRouter(tags=["exam-generation"])

log = logging.getLogger("generation.pipeline")
logging.basicConfig(level=LOG_LEVEL, format="%(asctime)s  %(levelname)s  %(message)s")


# ─── Schemas ───────────────────────────────────────────────────────────────────

class TemplateCreateRequest(BaseModel):
    name: str = Field(..., min_length=1, max_length=255)
    subject_id: str
    description: Optional[str] = None
    matrix_config: MatrixConfig
    constraints: GenerationConstraints = Field(default_factory=GenerationConstraints)


class GenerateRequest(BaseModel):
    variant_count: int = Field(1, le=MAX_VARIANT_COUNT, description="Number of variants in the batch")
    base_seed: Optional[int] = Field(None, description="Reproduces the batch; derived from the clock when omitted")


class PreviewRequest(GenerateRequest):
    matrix_config: MatrixConfig
    constraints: GenerationConstraints = Field(default_factory=GenerationConstraints)
    questions: List[BankQuestionRecord] = Field(..., description="Published question snapshot")


def _template_summary(template: models.ExamTemplate) -> dict:
    matrix = crud.template_matrix(template)
    return {
        "id": template.id,
        "name": template.name,
        "subject_id": template.subject_id,
        "description": template.description,
        "matrix_config": matrix.model_dump(),
        "constraints": template.constraints,
        "total_questions": matrix.total_questions,
        "total_points": matrix.total_points,
        "created_at": template.created_at.isoformat() if template.created_at else None,
    }


def _generated_summary(row: models.GeneratedExam) -> dict:
    return {
        **crud.to_generated_exam(row).model_dump(mode="json"),
        "exam": {
            "id": row.exam.id,
            "title": row.exam.title,
            "duration": row.exam.duration,
            "total_questions": row.exam.total_questions,
            "total_points": row.exam.total_points,
            "is_sectioned": row.exam.is_sectioned,
            "sections": row.exam.sections,
        } if row.exam else None,
    }


def _raise_for_generation_error(exc: Exception):
    if isinstance(exc, InsufficientPoolError):
        raise HTTPException(status_code=409, detail=exc.to_dict())
    if isinstance(exc, InvalidConstraintError):
        raise HTTPException(status_code=422, detail=str(exc))
    if isinstance(exc, MappingReplayError):
        raise HTTPException(status_code=409, detail=str(exc))
    raise exc


def _get_template_or_404(db: Session, template_id: str) -> models.ExamTemplate:
    template = crud.get_template(db, template_id)
    if not template:
        raise HTTPException(status_code=404, detail="Exam template not found")
    return template


# ─── Templates ─────────────────────────────────────────────────────────────────

@router.post("/exam-templates", status_code=201)
def create_template(request: TemplateCreateRequest, db: Session = Depends(get_db)):
    """Save a template. Cell available counts are refreshed from the current published bank."""
    if not crud.get_subject(db, request.subject_id):
        raise HTTPException(status_code=404, detail="Subject not found")
    try:
        validate_constraints(request.matrix_config, request.constraints)
    except InvalidConstraintError as e:
        _raise_for_generation_error(e)

    questions = crud.get_published_questions(db, request.subject_id)
    matrix = fill_available_counts(request.matrix_config, build_question_stats(questions))

    template = crud.create_template(
        db,
        name=request.name,
        subject_id=request.subject_id,
        matrix_config=matrix,
        constraints=request.constraints,
        description=request.description,
    )
    log.info(f"[TEMPLATE] created {template.id} '{template.name}' ({matrix.total_questions} questions)")
    return _template_summary(template)


@router.get("/exam-templates")
def list_templates(
    subject_id: Optional[str] = Query(None),
    db: Session = Depends(get_db),
):
    return [_template_summary(t) for t in crud.get_templates(db, subject_id=subject_id)]


@router.get("/exam-templates/{template_id}")
def get_template(template_id: str, db: Session = Depends(get_db)):
    return _template_summary(_get_template_or_404(db, template_id))


@router.get("/exam-templates/{template_id}/stats")
def template_stats(template_id: str, db: Session = Depends(get_db)):
    """Bank statistics for the template's subject and every cell the bank cannot cover."""
    template = _get_template_or_404(db, template_id)
    questions = crud.get_published_questions(db, template.subject_id)
    shortages = check_matrix_against_pool(
        crud.template_matrix(template), crud.template_constraints(template), questions,
    )
    return {
        "stats": build_question_stats(questions).model_dump(),
        "shortages": [s.to_dict() for s in shortages],
    }


# ─── Generation ────────────────────────────────────────────────────────────────

@router.post("/exam-templates/{template_id}/generate", status_code=201)
def generate_for_template(
    template_id: str,
    request: GenerateRequest,
    db: Session = Depends(get_db),
):
    """
    Generate `variant_count` variants from one snapshot of the published bank
    and store them in a single transaction. A short cell fails the whole batch
    with 409 and nothing is stored.
    """
    template = _get_template_or_404(db, template_id)
    questions = crud.get_published_questions(db, template.subject_id)

    try:
        results = generate_variant_set(
            crud.template_matrix(template),
            crud.template_constraints(template),
            request.variant_count,
            questions,
            base_seed=request.base_seed,
            template_id=template.id,
        )
    except (InsufficientPoolError, InvalidConstraintError) as e:
        log.warning(f"[GENERATE] template={template.id} rejected: {e}")
        _raise_for_generation_error(e)

    rows = crud.save_generated_batch(db, template, results)
    return [_generated_summary(row) for row in rows]


@router.get("/exam-templates/{template_id}/variants")
def list_variants(template_id: str, db: Session = Depends(get_db)):
    _get_template_or_404(db, template_id)
    return [_generated_summary(row) for row in crud.get_generated_exams(db, template_id)]


@router.get("/generated-exams/{generated_exam_id}/replay")
def replay_generated_exam(generated_exam_id: str, db: Session = Depends(get_db)):
    """Rebuild a delivered variant from its stored mapping; no random stream involved."""
    row = crud.get_generated_exam(db, generated_exam_id)
    if not row:
        raise HTTPException(status_code=404, detail="Generated exam not found")

    generated = crud.to_generated_exam(row)
    questions = crud.get_questions_by_ids(
        db, [m.bank_question_id for m in generated.question_mapping],
    )
    points = points_by_position(row.exam.questions) if row.exam else {}
    try:
        rendered = replay_mapping(generated.question_mapping, questions, points)
    except MappingReplayError as e:
        _raise_for_generation_error(e)

    return {
        "generated_exam": generated.model_dump(mode="json"),
        "questions": rendered,
        "sections": row.exam.sections if row.exam else None,
    }


@router.post("/generation/preview")
def preview_variants(request: PreviewRequest):
    """
    Stateless generation: the caller supplies the question snapshot inline and
    nothing is stored. Same seeds, same variants as the stored path.
    """
    try:
        results = generate_variant_set(
            request.matrix_config,
            request.constraints,
            request.variant_count,
            request.questions,
            base_seed=request.base_seed,
        )
    except (InsufficientPoolError, InvalidConstraintError) as e:
        _raise_for_generation_error(e)

    return [
        {
            **r.generated_exam.model_dump(mode="json"),
            "total_questions": r.variant.total_questions,
            "total_points": r.variant.total_points,
            "duration": r.variant.duration,
            "sections": [s.model_dump() for s in r.variant.sections],
            "questions": render_variant(r.variant),
        }
        for r in results
    ]
