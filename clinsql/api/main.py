"""
FastAPI web interface for clinsql.
"""

from fastapi import Depends, FastAPI, Query
from fastapi.middleware.cors import CORSMiddleware
import logging
from datetime import datetime
from typing import Optional

from .. import __version__
from ..config import settings
from ..models import PipelineOutcome
from ..text2sql import Text2SQL

# Set up logging
logging.basicConfig(
    level=getattr(logging, settings.log_level.upper(), logging.INFO),
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)

# FastAPI app
app = FastAPI(
    title="Clinical SQL Chat API",
    description="Ask questions about the clinical schema in plain language",
    version=__version__
)

# CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

_pipeline: Optional[Text2SQL] = None


def get_pipeline() -> Text2SQL:
    """Lazily built pipeline; overridden in tests."""
    global _pipeline
    if _pipeline is None:
        _pipeline = Text2SQL()
    return _pipeline


@app.get("/")
async def root():
    """Root endpoint."""
    return {
        "message": "Clinical SQL Chat API",
        "version": __version__,
        "docs": "/docs"
    }


@app.get("/query", response_model=PipelineOutcome)
def query(
    q: str = Query(..., description="Natural language question"),
    pipeline: Text2SQL = Depends(get_pipeline)
):
    """Answer a question. Failures are reported in ``error_message``."""
    outcome = pipeline.answer(q)
    outcome.rows = outcome.rows[:settings.display_row_limit]
    return outcome


@app.get("/health")
async def health_check():
    """Health check endpoint."""
    return {
        "status": "healthy",
        "timestamp": datetime.now().isoformat(),
        "version": __version__
    }


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "clinsql.api.main:app",
        host=settings.app_host,
        port=settings.app_port,
        reload=settings.debug
    )
