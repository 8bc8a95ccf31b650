import logging
from datetime import datetime
from typing import Any, Optional

from fastapi import Depends, FastAPI, File, HTTPException, UploadFile
from fastapi.responses import PlainTextResponse
from pydantic import BaseModel, Field

from policy_decoder.analysis import PolicyAnalyzer
from policy_decoder.config import Settings, get_settings
from policy_decoder.ingest import ExtractionError, IngestPipeline, spool_upload
from policy_decoder.logging_config import configure_logging
from policy_decoder.providers import LLMProvider, get_llm_provider
from policy_decoder.sessions import DocumentPayload, SessionStore, get_session_store
from policy_decoder.telemetry import emit_app_shutdown_event, emit_app_startup_event, log_event

configure_logging(get_settings().log_level)

LOGGER = logging.getLogger(__name__)

app = FastAPI(title="Policy Decoder API")

CHECK_FILE_MESSAGE = "Please check your file and try again"
REUPLOAD_MESSAGE = "Please upload your document again"

_EXTRACTION_STATUS = {
    "invalid_input": 400,
    "too_large": 413,
    "too_complex": 422,
    "malformed": 422,
}


@app.on_event("startup")
async def _startup() -> None:
    emit_app_startup_event()


@app.on_event("shutdown")
async def _shutdown() -> None:
    store = get_session_store()
    emit_app_shutdown_event(len(store))
    store.close()


def get_analyzer(
    provider: LLMProvider = Depends(get_llm_provider),
    settings: Settings = Depends(get_settings),
) -> PolicyAnalyzer:
    return PolicyAnalyzer(
        provider,
        prompt_text_limit=settings.prompt_text_limit,
        max_tokens=settings.llm_max_tokens,
    )


class AnalyzeResponse(BaseModel):
    session_id: str
    filename: Optional[str] = None
    category: str
    language: Optional[str] = None
    attributes: dict
    units: int
    characters: int
    truncated: bool


class ChatRequest(BaseModel):
    session_id: str = Field(..., min_length=1, max_length=128)
    question: str = Field(..., min_length=1, max_length=2000)


class ChatResponse(BaseModel):
    session_id: str
    answer: str


class SessionInfoResponse(BaseModel):
    id: str
    created_at: datetime
    last_accessed_at: datetime
    idle_seconds: float


class SessionStatsResponse(BaseModel):
    count: int
    sessions: list[SessionInfoResponse]


@app.get("/", response_class=PlainTextResponse)
def read_root() -> str:
    """Healthcheck endpoint for the service."""
    return "ok"


@app.get("/healthz", response_class=PlainTextResponse)
def healthcheck() -> str:
    """Liveness check used by container orchestrators."""
    return "ok"


@app.post("/analyze", response_model=AnalyzeResponse)
def analyze_document(
    file: UploadFile = File(...),
    settings: Settings = Depends(get_settings),
    store: SessionStore = Depends(get_session_store),
    analyzer: PolicyAnalyzer = Depends(get_analyzer),
) -> AnalyzeResponse:
    """Extract an uploaded policy, summarise it and open a session over it."""

    raw = spool_upload(
        file.file,
        filename=file.filename,
        media_type=file.content_type,
        max_bytes=settings.max_upload_bytes,
        directory=settings.upload_tmp_dir,
    )
    try:
        extracted = IngestPipeline(settings.limits).extract(raw)
    except ExtractionError as exc:
        raise HTTPException(
            status_code=_EXTRACTION_STATUS.get(exc.kind, 400),
            detail={"message": CHECK_FILE_MESSAGE, "kind": exc.kind, "reason": str(exc)},
        ) from exc

    if not extracted.text:
        raise HTTPException(
            status_code=422,
            detail={
                "message": CHECK_FILE_MESSAGE,
                "kind": "no_text",
                "reason": "No readable text was found in the document",
            },
        )

    try:
        payload = analyzer.analyze(extracted, filename=raw.filename)
    except Exception as exc:
        log_event(LOGGER, "analysis.failed", level="error", exc=exc)
        raise HTTPException(status_code=502, detail="Document analysis failed") from exc

    session_id = store.put(payload, category="policy")
    return AnalyzeResponse(
        session_id=session_id,
        filename=payload.filename,
        category=payload.category,
        language=payload.language,
        attributes=payload.attributes,
        units=extracted.unit_count,
        characters=len(extracted.text),
        truncated=extracted.truncated,
    )


@app.post("/chat", response_model=ChatResponse)
def chat(
    request: ChatRequest,
    store: SessionStore = Depends(get_session_store),
    analyzer: PolicyAnalyzer = Depends(get_analyzer),
) -> ChatResponse:
    """Answer a question about the document held by an active session."""

    payload: Any = store.get(request.session_id)
    if not isinstance(payload, DocumentPayload):
        raise HTTPException(status_code=404, detail=REUPLOAD_MESSAGE)

    try:
        answer = analyzer.answer(request.question, payload)
    except Exception as exc:
        log_event(LOGGER, "chat.failed", level="error", session_id=request.session_id, exc=exc)
        raise HTTPException(status_code=502, detail="Error generating answer") from exc
    return ChatResponse(session_id=request.session_id, answer=answer)


@app.delete("/sessions/{session_id}")
def end_session(session_id: str, store: SessionStore = Depends(get_session_store)) -> dict[str, str]:
    """Forget a session's document immediately."""

    if not store.delete(session_id):
        raise HTTPException(status_code=404, detail="Session not found")
    return {"message": "Session deleted successfully"}


@app.get("/sessions/stats", response_model=SessionStatsResponse)
def session_stats(store: SessionStore = Depends(get_session_store)) -> SessionStatsResponse:
    """Expose active session counts and idle times for operators."""

    stats = store.stats()
    return SessionStatsResponse(
        count=stats.count,
        sessions=[
            SessionInfoResponse(
                id=info.id,
                created_at=info.created_at,
                last_accessed_at=info.last_accessed_at,
                idle_seconds=round(info.idle_seconds, 3),
            )
            for info in stats.sessions
        ],
    )
