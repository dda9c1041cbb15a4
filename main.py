"""
Exam Variant Generator API — Main Application
FastAPI application for matrix-based exam templates and their seeded variants.
"""

from dotenv import load_dotenv
load_dotenv()

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from contextlib import asynccontextmanager

from config import CORS_ORIGINS
from database.database import engine, Base
from database import models  # noqa: F401  (registers tables on Base.metadata)
from routers import exam_generation


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup: create tables."""
    Base.metadata.create_all(bind=engine)
    yield


app = FastAPI(
    title="Exam Variant Generator API",
    description="Matrix-based exam templates, seeded variant generation and audit replay",
    version="1.0.0",
    lifespan=lifespan,
)

# CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=CORS_ORIGINS,
    allow_credentials=False,
    allow_methods=["*"],
    allow_headers=["*"],
)

# ─── Routers ───────────────────────────────────────────────────────────────────

app.include_router(exam_generation.router)   # /exam-templates/*, /generated-exams/*, /generation/*


@app.get("/")
def root():
    return {
        "name": "Exam Variant Generator API",
        "version": "1.0.0",
        "endpoints": {
            "docs": "/docs",
            "exam_templates": "/exam-templates",
            "preview": "/generation/preview",
        },
    }


@app.get("/health")
def health_check():
    return {"status": "healthy", "service": "exam-variant-generator"}


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=8001)
