"""
Gradebook Dashboard — Middle-school grade analytics
FastAPI backend entry point.
"""

import logging
import os

from dotenv import load_dotenv
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from core.stats import PASS_MARK
from core.subjects import ENGLISH_NAMES, OFFICIAL_ORDER
from routes.analyze import router as analyze_router
from routes.gradebook import router as gradebook_router
from routes.reports import router as reports_router

# Load environment
load_dotenv()

SCHOOL_NAME = os.getenv("SCHOOL_NAME", "My School")
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()
# Comma-separated allowed origins, e.g. http://localhost:5173,https://app.example.com
raw_origins = os.getenv("CORS_ORIGINS", "http://localhost:5173,http://localhost:3000")
ALLOWED_ORIGINS = [o.strip() for o in raw_origins.split(",") if o.strip()]

logging.basicConfig(
    level=LOG_LEVEL,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)

app = FastAPI(
    title="Gradebook Dashboard API",
    description=(
        "Subject statistics, gender / level / exam analyses and orientation "
        "predictions for middle-school gradebooks (grades on a 0-20 scale)."
    ),
    version="1.0.0",
)

# CORS — allow the React dev server
app.add_middleware(
    CORSMiddleware,
    allow_origins=ALLOWED_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Register route modules
app.include_router(gradebook_router, prefix="/api/gradebook", tags=["Gradebook"])
app.include_router(analyze_router, prefix="/api/analyze", tags=["Analytics"])
app.include_router(reports_router, prefix="/api/reports", tags=["Reports"])


@app.get("/api/health")
async def health_check():
    return {
        "status": "ok",
        "school_name": SCHOOL_NAME,
        "pass_mark": PASS_MARK,
    }


@app.get("/api/config")
async def get_config():
    """Return server configuration to the frontend."""
    return {
        "school_name": SCHOOL_NAME,
        "pass_mark": PASS_MARK,
        "subjects": [
            {"name": name, "english_name": ENGLISH_NAMES[name]}
            for name in OFFICIAL_ORDER
        ],
    }
