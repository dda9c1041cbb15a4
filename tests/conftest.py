import os

os.environ.setdefault("DATABASE_URL", "sqlite://")

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from database import models
from database.database import Base, get_db
from generation.schemas import (
    GenerationConstraints, MatrixCell, MatrixConfig, parse_bank_questions,
)


def _mcq_row(qid, taxonomy="A1", cognitive="remember", qtype="MCQ_SINGLE",
             difficulty=0.5, options=4, correct=(0,), allow_shuffle=True):
    return {
        "id": qid,
        "content": f"Question {qid}",
        "taxonomy_node_id": taxonomy,
        "cognitive_level": cognitive,
        "question_type": qtype,
        "difficulty": difficulty,
        "allow_shuffle": allow_shuffle,
        "answer_data": {
            "options": [
                {"id": f"{qid}-opt{i}", "content": f"Option {i}", "is_correct": i in correct}
                for i in range(options)
            ],
        },
    }


@pytest.fixture
def mcq_row():
    return _mcq_row


@pytest.fixture
def make_questions():
    """Build typed bank records from raw dicts."""
    return parse_bank_questions


@pytest.fixture
def mcq_bank():
    """12 A1/remember/MCQ_SINGLE questions, difficulties spread over 0.0 .. 1.0."""
    return parse_bank_questions([
        _mcq_row(f"q{i:02d}", difficulty=round(i / 11, 4)) for i in range(12)
    ])


@pytest.fixture
def mixed_bank():
    rows = [_mcq_row(f"mcq{i}", taxonomy="A1", cognitive="remember") for i in range(6)]
    rows += [_mcq_row(f"und{i}", taxonomy="A1", cognitive="understand") for i in range(4)]
    rows += [
        {
            "id": f"tf{i}", "content": f"TF {i}", "taxonomy_node_id": "B2",
            "cognitive_level": "apply", "question_type": "TRUE_FALSE_4", "difficulty": 0.4,
            "answer_data": {"statements": [
                {"id": f"tf{i}-s{k}", "content": f"Statement {k}", "is_true": k % 2 == 0}
                for k in range(4)
            ]},
        }
        for i in range(3)
    ]
    rows += [
        {
            "id": f"sa{i}", "content": f"Short {i}", "taxonomy_node_id": "B2",
            "cognitive_level": "apply", "question_type": "SHORT_ANSWER", "difficulty": 0.6,
            "answer_data": {"correct_answers": [f"answer {i}"], "case_sensitive": False},
        }
        for i in range(3)
    ]
    rows += [
        {
            "id": f"code{i}", "content": f"Code {i}", "taxonomy_node_id": "C1",
            "cognitive_level": "create", "question_type": "CODING", "difficulty": 0.9,
            "answer_data": {"languages": ["python"], "test_cases": [
                {"id": "t1", "input": "1", "expected_output": "2"},
            ]},
        }
        for i in range(2)
    ]
    return parse_bank_questions(rows)


@pytest.fixture
def one_cell_matrix():
    return MatrixConfig(
        cells=[MatrixCell(
            taxonomy_node_id="A1", cognitive_level="remember", question_type="MCQ_SINGLE",
            count=5, points=2, available_count=12,
        )],
        duration=45,
    )


@pytest.fixture
def mixed_matrix():
    return MatrixConfig(
        cells=[
            MatrixCell(taxonomy_node_id="A1", cognitive_level="remember", question_type="MCQ_SINGLE", count=3, points=1),
            MatrixCell(taxonomy_node_id="A1", cognitive_level="understand", question_type="MCQ_SINGLE", count=2, points=1.5),
            MatrixCell(taxonomy_node_id="B2", cognitive_level="apply", question_type="TRUE_FALSE_4", count=2, points=2),
            MatrixCell(taxonomy_node_id="B2", cognitive_level="apply", question_type="SHORT_ANSWER", count=1, points=2),
            MatrixCell(taxonomy_node_id="C1", cognitive_level="create", question_type="CODING", count=1, points=5),
            MatrixCell(taxonomy_node_id="C1", cognitive_level="remember", question_type="CODING", count=0, points=5),
        ],
        duration=90,
    )


@pytest.fixture
def shuffle_all():
    return GenerationConstraints(allow_shuffle=True, shuffle_options=True, min_difficulty=0.0, max_difficulty=1.0)


# ─── Database / API ────────────────────────────────────────────────────────────

@pytest.fixture
def db_session():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    TestingSession = sessionmaker(autocommit=False, autoflush=False, bind=engine)
    session = TestingSession()
    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=engine)
        engine.dispose()


@pytest.fixture
def client(db_session):
    from main import app

    def override_get_db():
        yield db_session

    app.dependency_overrides[get_db] = override_get_db
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.clear()


@pytest.fixture
def seeded_subject(db_session):
    """Subject with 12 published A1/remember MCQs, plus one draft and one deleted question."""
    from datetime import datetime, timedelta, timezone

    subject = models.Subject(id="subj-1", code="CS101", name="Computer Science")
    db_session.add(subject)
    base_time = datetime(2024, 1, 1, tzinfo=timezone.utc)
    for i in range(12):
        row = _mcq_row(f"q{i:02d}", difficulty=0.5)
        db_session.add(models.BankQuestion(
            id=row["id"],
            subject_id=subject.id,
            content=row["content"],
            taxonomy_node_id=row["taxonomy_node_id"],
            cognitive_level=row["cognitive_level"],
            question_type=row["question_type"],
            difficulty=row["difficulty"],
            allow_shuffle=True,
            answer_data=row["answer_data"],
            status="published",
            created_at=base_time + timedelta(minutes=i),
        ))
    db_session.add(models.BankQuestion(
        id="draft-1", subject_id=subject.id, content="Draft", taxonomy_node_id="A1",
        cognitive_level="remember", question_type="MCQ_SINGLE", answer_data={"options": []},
        status="draft", created_at=base_time,
    ))
    db_session.add(models.BankQuestion(
        id="deleted-1", subject_id=subject.id, content="Deleted", taxonomy_node_id="A1",
        cognitive_level="remember", question_type="MCQ_SINGLE", answer_data={"options": []},
        status="published", deleted_at=base_time, created_at=base_time,
    ))
    db_session.commit()
    return subject
