"""
CRUD operations for templates, question snapshots and generated variants
All database operations go through these functions
"""

import logging
from typing import List, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from database import models
from generation import schemas
from generation.exam_formatter import render_variant

log = logging.getLogger("generation.pipeline")


# ==========================================
# SUBJECTS / QUESTION SNAPSHOT
# ==========================================

def get_subject(db: Session, subject_id: str) -> Optional[models.Subject]:
    """Get subject by ID"""
    return db.query(models.Subject).filter(models.Subject.id == subject_id).first()


def _question_row(row: models.BankQuestion) -> dict:
    return {
        "id": row.id,
        "content": row.content,
        "taxonomy_node_id": row.taxonomy_node_id,
        "cognitive_level": row.cognitive_level,
        "question_type": row.question_type,
        "difficulty": row.difficulty,
        "allow_shuffle": row.allow_shuffle,
        "answer_data": row.answer_data or {},
    }


def get_published_questions(db: Session, subject_id: str) -> List[schemas.BankQuestionBase]:
    """
    One snapshot of the subject's published bank, typed by question_type.

    Ordered by (created_at, id) so the same bank always yields the same
    snapshot order, which seeded sampling depends on.
    """
    rows = (
        db.query(models.BankQuestion)
        .filter(
            models.BankQuestion.subject_id == subject_id,
            models.BankQuestion.status == "published",
            models.BankQuestion.deleted_at.is_(None),
        )
        .order_by(models.BankQuestion.created_at, models.BankQuestion.id)
        .all()
    )
    return schemas.parse_bank_questions([_question_row(row) for row in rows])


def get_questions_by_ids(db: Session, question_ids: List[str]) -> List[schemas.BankQuestionBase]:
    """
    Bank records referenced by a stored variant, whatever their current
    status. Unpublished and soft-deleted questions stay replayable.
    """
    if not question_ids:
        return []
    rows = db.query(models.BankQuestion).filter(models.BankQuestion.id.in_(question_ids)).all()
    return schemas.parse_bank_questions([_question_row(row) for row in rows])


# ==========================================
# EXAM TEMPLATE CRUD
# ==========================================

def create_template(
    db: Session,
    name: str,
    subject_id: str,
    matrix_config: schemas.MatrixConfig,
    constraints: schemas.GenerationConstraints,
    description: Optional[str] = None,
) -> models.ExamTemplate:
    """Create a new exam template"""
    db_template = models.ExamTemplate(
        name=name,
        subject_id=subject_id,
        description=description,
        matrix_config=matrix_config.model_dump(mode="json"),
        constraints=constraints.model_dump(mode="json"),
    )
    db.add(db_template)
    db.commit()
    db.refresh(db_template)
    return db_template


def get_template(db: Session, template_id: str) -> Optional[models.ExamTemplate]:
    """Get template by ID"""
    return db.query(models.ExamTemplate).filter(models.ExamTemplate.id == template_id).first()


def get_templates(db: Session, subject_id: Optional[str] = None, skip: int = 0, limit: int = 100) -> List[models.ExamTemplate]:
    """Get templates, newest first, optionally for one subject"""
    query = db.query(models.ExamTemplate)
    if subject_id:
        query = query.filter(models.ExamTemplate.subject_id == subject_id)
    return query.order_by(models.ExamTemplate.created_at.desc()).offset(skip).limit(limit).all()


def template_matrix(template: models.ExamTemplate) -> schemas.MatrixConfig:
    return schemas.MatrixConfig.model_validate(template.matrix_config)


def template_constraints(template: models.ExamTemplate) -> schemas.GenerationConstraints:
    return schemas.GenerationConstraints.model_validate(template.constraints)


# ==========================================
# GENERATED VARIANTS
# ==========================================

def save_generated_batch(
    db: Session,
    template: models.ExamTemplate,
    results: List[schemas.VariantResult],
) -> List[models.GeneratedExam]:
    """
    Persist a whole batch in one transaction.
    Either every variant (exam + generated_exam) is stored or none is.
    """
    constraints = template_constraints(template)
    rows: List[models.GeneratedExam] = []
    try:
        for result in results:
            generated = result.generated_exam
            variant = result.variant
            exam = models.VariantExam(
                id=generated.exam_id,
                title=f"{template.name} - Variant {generated.variant_code}",
                subject_id=template.subject_id,
                description=template.description,
                duration=variant.duration,
                total_questions=variant.total_questions,
                total_points=variant.total_points,
                questions=render_variant(variant),
                is_sectioned=constraints.is_sectioned,
                sections=[s.model_dump() for s in variant.sections] if constraints.is_sectioned else None,
            )
            row = models.GeneratedExam(
                id=generated.id,
                template_id=template.id,
                exam_id=exam.id,
                variant_code=generated.variant_code,
                seed=generated.seed,
                question_mapping=[m.model_dump(exclude_none=True) for m in generated.question_mapping],
                created_at=generated.created_at,
            )
            db.add(exam)
            db.add(row)
            rows.append(row)
        db.commit()
    except SQLAlchemyError:
        db.rollback()
        log.error(f"[PERSIST] batch for template {template.id} rolled back")
        raise

    for row in rows:
        db.refresh(row)
    log.info(f"[PERSIST] template={template.id}: {len(rows)} variant(s) stored")
    return rows


def get_generated_exams(db: Session, template_id: str) -> List[models.GeneratedExam]:
    """Every variant of a template, oldest batch first"""
    return (
        db.query(models.GeneratedExam)
        .filter(models.GeneratedExam.template_id == template_id)
        .order_by(models.GeneratedExam.created_at, models.GeneratedExam.variant_code)
        .all()
    )


def get_generated_exam(db: Session, generated_exam_id: str) -> Optional[models.GeneratedExam]:
    """Get one generated variant by ID"""
    return db.query(models.GeneratedExam).filter(models.GeneratedExam.id == generated_exam_id).first()


def to_generated_exam(row: models.GeneratedExam) -> schemas.GeneratedExam:
    return schemas.GeneratedExam(
        id=row.id,
        template_id=row.template_id,
        exam_id=row.exam_id,
        variant_code=row.variant_code,
        seed=row.seed,
        question_mapping=[schemas.QuestionMapping.model_validate(m) for m in row.question_mapping],
        created_at=row.created_at,
    )
