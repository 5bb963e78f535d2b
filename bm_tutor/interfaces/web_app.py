"""
Web Interface - JSON API over the tutor pipeline.

Routes:
    GET  /health
    POST /api/ingest
    GET  /api/topics?subject=BM&year=3
    POST /api/quiz
    POST /api/quiz/submit
    POST /api/tutor
    GET  /api/progress

Run with:
    uvicorn bm_tutor.interfaces.web_app:create_app --factory --reload
"""

from typing import Literal

from fastapi import FastAPI, Query, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field

from bm_tutor import __version__
from bm_tutor.config import (
    DEFAULT_QUIZ_ITEMS,
    DEFAULT_SUBJECT,
    MAX_QUIZ_ITEMS,
    MIN_INGEST_TEXT_CHARS,
    MIN_QUIZ_ITEMS,
)
from bm_tutor.exceptions import (
    GenerationFailure,
    InvalidAttempt,
    NotFound,
    TutorError,
    UpstreamFailure,
    ValidationError,
)
from bm_tutor.logging_utils import get_logger
from bm_tutor.pipeline import TutorPipeline

logger = get_logger(__name__)

_STATUS_CODES = {
    ValidationError: 400,
    InvalidAttempt: 400,
    NotFound: 404,
    GenerationFailure: 502,
    UpstreamFailure: 502,
}


# ── Request bodies ───────────────────────────────────────────────────────────


class IngestRequest(BaseModel):
    subject: str = Field(DEFAULT_SUBJECT, min_length=1)
    year: int
    source: str = Field(..., min_length=1)
    text: str = Field(..., min_length=MIN_INGEST_TEXT_CHARS)


class QuizRequest(BaseModel):
    childId: str = Field(..., min_length=1)
    year: int
    subject: str = Field(DEFAULT_SUBJECT, min_length=1)
    topic: str = Field(..., min_length=1)
    difficulty: Literal["easy", "medium", "hard"] = "easy"
    count: int = Field(DEFAULT_QUIZ_ITEMS, ge=MIN_QUIZ_ITEMS, le=MAX_QUIZ_ITEMS)


class SubmitRequest(BaseModel):
    attemptId: str = Field(..., min_length=1)
    answers: dict[str, str]


class TutorRequest(BaseModel):
    childId: str = Field(..., min_length=1)
    year: int
    subject: str = Field(DEFAULT_SUBJECT, min_length=1)
    languageMode: Literal["BM_EN", "BM_ONLY", "EN_ONLY"] = "BM_EN"
    message: str = Field(..., min_length=1)
    topicKey: str | None = None


# ── App factory ──────────────────────────────────────────────────────────────


def create_app(pipeline: TutorPipeline | None = None) -> FastAPI:
    """
    Build the FastAPI app.

    Args:
        pipeline: Pipeline to serve (production pipeline if not provided)
    """
    app = FastAPI(title="BM Tutor", version=__version__)
    app.state.pipeline = pipeline or TutorPipeline.from_config()

    @app.exception_handler(TutorError)
    async def tutor_error_handler(request: Request, exc: TutorError):
        status = next(
            (code for cls, code in _STATUS_CODES.items() if isinstance(exc, cls)), 500
        )
        if status >= 500:
            logger.error("%s %s failed: %s", request.method, request.url.path, exc)
        return JSONResponse(status_code=status, content={"error": exc.message})

    @app.exception_handler(RequestValidationError)
    async def request_validation_handler(request: Request, exc: RequestValidationError):
        # Same 400 {"error": ...} shape as ValidationError raised by the pipeline
        return JSONResponse(status_code=400, content={"error": _describe_errors(exc.errors())})

    def get_pipeline() -> TutorPipeline:
        return app.state.pipeline

    @app.get("/health")
    def health():
        return {"status": "ok", "version": __version__}

    @app.post("/api/ingest")
    def ingest(body: IngestRequest):
        result = get_pipeline().ingest(body.subject, body.year, body.source, body.text)
        return result.to_dict()

    @app.get("/api/topics")
    def topics(subject: str = Query(..., min_length=1), year: int = Query(...)):
        found = get_pipeline().retrieve_topics(subject, year)
        return {"topics": [t.to_dict() for t in found]}

    @app.post("/api/quiz")
    def quiz(body: QuizRequest):
        session = get_pipeline().generate_quiz(
            body.childId, body.year, body.subject, body.topic, body.difficulty, body.count
        )
        return session.to_dict()

    @app.post("/api/quiz/submit")
    def submit(body: SubmitRequest):
        return get_pipeline().submit_attempt(body.attemptId, body.answers).to_dict()

    @app.post("/api/tutor")
    def tutor(body: TutorRequest):
        reply = get_pipeline().tutor_reply(
            body.childId,
            body.subject,
            body.year,
            body.message,
            language_mode=body.languageMode,
            topic_key=body.topicKey,
        )
        return reply.to_dict()

    @app.get("/api/progress")
    def progress(limit: int = Query(30, ge=1, le=200)):
        attempts = get_pipeline().list_attempts(limit)
        return {"attempts": [a.summary() for a in attempts]}

    return app

