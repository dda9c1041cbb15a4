"""
Service settings, read from the environment (.env is loaded by main.py).
"""

import os

DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///./exam_generator.db")

CORS_ORIGINS = [
    origin.strip()
    for origin in os.getenv("CORS_ORIGINS", "http://localhost:5173,http://localhost:3000").split(",")
    if origin.strip()
]

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()

# API guard only; the generator itself has no upper bound
MAX_VARIANT_COUNT = int(os.getenv("MAX_VARIANT_COUNT", "50"))
