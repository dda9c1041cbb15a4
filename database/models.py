"""
SQLAlchemy models for exam templates and their generated variants

Subject → BankQuestion (published snapshot source)
ExamTemplate → GeneratedExam → VariantExam

GeneratedExam rows are written once per batch and never updated; a
correction means generating a new variant.
"""

import uuid

from sqlalchemy import BigInteger, Boolean, Column, DateTime, Float, ForeignKey, Integer, JSON, String, Text
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from database.database import Base


def _uuid() -> str:
    return str(uuid.uuid4())


class Subject(Base):
    """Subject a question bank and its templates belong to."""
    __tablename__ = "subjects"

    id = Column(String(36), primary_key=True, default=_uuid)
    code = Column(String(50), nullable=True, unique=True)
    name = Column(String(255), nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    def __repr__(self):
        return f"<Subject(id={self.id}, name='{self.name}')>"


class BankQuestion(Base):
    """
    Question in the bank. Only status == 'published' rows with no deleted_at
    are eligible for generation.
    answer_data shape depends on question_type (options / statements / ...).
    """
    __tablename__ = "questions"

    id = Column(String(36), primary_key=True, default=_uuid)
    subject_id = Column(String(36), ForeignKey("subjects.id", ondelete="CASCADE"), nullable=False, index=True)
    content = Column(Text, nullable=False, default="")
    taxonomy_node_id = Column(String(36), nullable=True, index=True)
    cognitive_level = Column(String(50), nullable=True, index=True)
    question_type = Column(String(30), nullable=False, index=True)
    difficulty = Column(Float, nullable=False, default=0.5)   # normalised 0..1
    allow_shuffle = Column(Boolean, nullable=False, default=True)
    answer_data = Column(JSON, nullable=False, default=dict)
    status = Column(String(20), nullable=False, default="draft")   # draft | review | approved | published
    deleted_at = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    subject = relationship("Subject", backref="questions")

    def __repr__(self):
        return f"<BankQuestion(id={self.id}, type={self.question_type}, status={self.status})>"


class ExamTemplate(Base):
    """Matrix + constraints authored once per exam; input to every generation batch."""
    __tablename__ = "exam_templates"

    id = Column(String(36), primary_key=True, default=_uuid)
    name = Column(String(255), nullable=False)
    subject_id = Column(String(36), ForeignKey("subjects.id", ondelete="CASCADE"), nullable=False, index=True)
    description = Column(Text, nullable=True)
    matrix_config = Column(JSON, nullable=False)
    constraints = Column(JSON, nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)

    subject = relationship("Subject", backref="exam_templates")
    generated_exams = relationship(
        "GeneratedExam", back_populates="template", cascade="all, delete-orphan",
        order_by="GeneratedExam.variant_code",
    )

    def __repr__(self):
        return f"<ExamTemplate(id={self.id}, name='{self.name}')>"


class VariantExam(Base):
    """The rendered exam a variant code is delivered as."""
    __tablename__ = "exams"

    id = Column(String(36), primary_key=True, default=_uuid)
    title = Column(String(255), nullable=False)
    subject_id = Column(String(36), ForeignKey("subjects.id", ondelete="CASCADE"), nullable=False, index=True)
    description = Column(Text, nullable=True)
    duration = Column(Integer, nullable=False)   # minutes
    total_questions = Column(Integer, nullable=False)
    total_points = Column(Float, nullable=False)
    questions = Column(JSON, nullable=False)
    is_sectioned = Column(Boolean, nullable=False, default=False)
    sections = Column(JSON, nullable=True)
    is_published = Column(Boolean, nullable=False, default=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    def __repr__(self):
        return f"<VariantExam(id={self.id}, title='{self.title}')>"


class GeneratedExam(Base):
    """One variant of a template: code, seed and the question mapping trace."""
    __tablename__ = "generated_exams"

    id = Column(String(36), primary_key=True, default=_uuid)
    template_id = Column(String(36), ForeignKey("exam_templates.id", ondelete="CASCADE"), nullable=False, index=True)
    exam_id = Column(String(36), ForeignKey("exams.id", ondelete="CASCADE"), nullable=False, index=True)
    variant_code = Column(String(10), nullable=False)
    seed = Column(BigInteger, nullable=False)   # 32-bit unsigned, does not fit a signed INTEGER
    question_mapping = Column(JSON, nullable=False)
    created_at = Column(DateTime(timezone=True), nullable=False)

    template = relationship("ExamTemplate", back_populates="generated_exams")
    exam = relationship("VariantExam")

    def __repr__(self):
        return f"<GeneratedExam(id={self.id}, template_id={self.template_id}, code={self.variant_code}, seed={self.seed})>"
