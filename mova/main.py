"""
MOVA AI MAIN API
================

This module defines the FastAPI application and all HTTP endpoints. It is
designed for single-user use: one person runs one server (python run.py) and
points their chat UI at it.

ENDPOINTS:
  GET  /                  - Returns API name and list of endpoints.
  GET  /health            - Returns status of all services (for monitoring).
  POST /chat              - Text chat; falls back across chat models on rate limits.
  POST /chat/analyze      - Describe/analyze an attached image.
  POST /chat/edit         - Edit the attached image (or the session's active image).
  POST /chat/generate     - Generate an image from a text prompt.
  GET  /chat/history/{id} - Returns all turns of a session in order.

SESSION:
  All /chat endpoints share one session. If you omit session_id the server
  generates a UUID and returns it; send it back to continue the conversation.
  Sessions live in memory only and are gone when the server stops.

ERRORS:
  A failed request still appends an error turn to the session. The response body
  is the usual TurnResponse, with an HTTP status chosen from the error kind
  (429 for rate limits, 422 for safety blocks, 502 for backend faults, 500 otherwise).

STARTUP:
  The lifespan function builds the Gemini backend, the request orchestrator and
  the chat service. If GEMINI_API_KEY is missing, no service is built and every
  chat endpoint answers 503 with that message before any network call.
"""


from fastapi import FastAPI, HTTPException
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from contextlib import asynccontextmanager
from typing import Optional
import uvicorn
import logging

from config import GEMINI_API_KEY, HOST, PORT, ASSISTANT_NAME
from mova.models import (
    AnalyzeImageIntent,
    ChatHistory,
    ChatIntent,
    ChatRequest,
    GenerateImageIntent,
    ImagePayload,
    ImageRequest,
    Intent,
    TurnOut,
    TurnResponse,
)
from mova.services.chat_service import ChatService, SessionBusyError
from mova.services.errors import ErrorKind, MissingCredentialError
from mova.services.gemini_backend import GeminiBackend
from mova.services.orchestrator import RequestOrchestrator
from mova.utils.images import decode_image


# -----------------------------------------------------------------------------
# LOGGING
# -----------------------------------------------------------------------------
logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s | %(levelname)-8s | %(name)-20s | %(message)s',
    datefmt='%Y-%m-%d %H:%M:%S'
)
logger = logging.getLogger("mova")

# HTTP status for an error turn, by classified kind.
ERROR_STATUS = {
    ErrorKind.RATE_LIMIT: 429,
    ErrorKind.SAFETY_ERROR: 422,
    ErrorKind.AUTH_ERROR: 502,
    ErrorKind.NETWORK_ERROR: 502,
    ErrorKind.EMPTY_RESPONSE: 502,
    ErrorKind.NO_CANDIDATES: 502,
    ErrorKind.UNKNOWN_ERROR: 500,
}


# -----------------------------------------------------------------------------
# GLOBAL SERVICE REFERENCES
# -----------------------------------------------------------------------------
# Set during startup (lifespan) and used by all route handlers.
gemini_backend: GeminiBackend = None
orchestrator: RequestOrchestrator = None
chat_service: ChatService = None
# Why startup could not build the services (e.g. "GEMINI_API_KEY is not set").
init_error: Optional[str] = None


def print_title():
    """Print the banner to the console when the server starts."""
    CYAN = "\033[96m"
    BOLD = "\033[1m"
    DIM = "\033[2m"
    RESET = "\033[0m"
    print(f"\n{BOLD}{CYAN}  {ASSISTANT_NAME}{RESET}  {DIM}multimodal assistant backend{RESET}\n")


# -------------------------------------------------------------------------
# LIFESPAN (STARTUP / SHUTDOWN)
# -------------------------------------------------------------------------


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application lifespan manager.

    STARTUP builds, in order:
      1. GeminiBackend: validates GEMINI_API_KEY and owns the google-genai client
      2. RequestOrchestrator: model fallback, retries and error classification
      3. ChatService: in-memory sessions on top of the orchestrator
    A missing key is not fatal: the server starts, /health reports the reason,
    and chat endpoints answer 503.

    SHUTDOWN closes the backend client. Sessions are simply dropped.
    """
    global gemini_backend, orchestrator, chat_service, init_error

    print_title()
    logger.info("=" * 60)
    logger.info("%s - Starting Up...", ASSISTANT_NAME)
    logger.info("=" * 60)

    try:
        gemini_backend = GeminiBackend(GEMINI_API_KEY)
        orchestrator = RequestOrchestrator(gemini_backend)
        chat_service = ChatService(orchestrator)
        init_error = None
        logger.info("Services ready. API: http://localhost:%s  Docs: http://localhost:%s/docs", PORT, PORT)
    except MissingCredentialError as e:
        init_error = e.message
        logger.error("Startup incomplete: %s. Chat endpoints will answer 503.", e.message)

    yield

    logger.info("Shutting down %s...", ASSISTANT_NAME)
    if gemini_backend is not None:
        await gemini_backend.aclose()
    gemini_backend = orchestrator = chat_service = None


# -------------------------------------------------------------------------
# FASTAPI APP AND CORS
# -------------------------------------------------------------------------
app = FastAPI(
    title="mova ai API",
    description="Multimodal chat backend with model fallback",
    lifespan=lifespan
)

# Allow any origin so a frontend on another port can call this API.
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# -------------------------------------------------------------------------
# HELPERS
# -------------------------------------------------------------------------

def _require_chat_service() -> ChatService:
    if chat_service is None:
        raise HTTPException(status_code=503, detail=init_error or "Chat service not initialized")
    return chat_service


def _open_session(service: ChatService, session_id: Optional[str]) -> str:
    try:
        return service.get_or_create_session(session_id)
    except ValueError as e:
        logger.warning(f"Invalid session_id: {e}")
        raise HTTPException(status_code=400, detail=str(e))


def _decode_request_image(request: ImageRequest) -> Optional[ImagePayload]:
    if not request.image:
        return None
    try:
        data, media_type = decode_image(request.image, request.media_type)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return ImagePayload(data=data, media_type=media_type)


async def _submit(service: ChatService, session_id: str, intent: Intent):
    """Run the intent and shape the reply; error turns keep the body but change the status."""
    try:
        turn = await service.submit(session_id, intent)
    except SessionBusyError as e:
        raise HTTPException(status_code=409, detail=str(e))

    body = TurnResponse(session_id=session_id, turn=TurnOut.from_turn(turn))
    if turn.is_error:
        status = ERROR_STATUS.get(turn.error_kind, 500)
        return JSONResponse(status_code=status, content=body.model_dump())
    return body


# =========================================================================
# API ENDPOINTS
# =========================================================================

@app.get("/")
async def root():
    """Return the API name and a short description of each endpoint (for discovery)."""
    return {
        "message": "mova ai API",
        "endpoints": {
            "/chat": "Text chat with model fallback",
            "/chat/analyze": "Analyze an image",
            "/chat/edit": "Edit an image (or the session's active image)",
            "/chat/generate": "Generate an image from text",
            "/chat/history/{session_id}": "Get chat history",
            "/health": "System health check"
        }
    }


@app.get("/health")
async def health():
    """Return 'healthy' when all services are initialized, otherwise 'degraded' with the reason."""
    return {
        "status": "healthy" if chat_service is not None else "degraded",
        "gemini_backend": gemini_backend is not None,
        "orchestrator": orchestrator is not None,
        "chat_service": chat_service is not None,
        "error": init_error,
    }


@app.post("/chat", response_model=TurnResponse)
async def chat(request: ChatRequest):
    """
    Send a text message. Chat models are tried in order; a rate-limited model is
    skipped after a one second pause, any other failure is returned at once.

    REQUEST BODY:  {"message": "What is Python?", "session_id": "optional-session-id"}
    RESPONSE:      {"session_id": "...", "turn": {"role": "assistant", "text": "...", ...}}
    """
    service = _require_chat_service()
    session_id = _open_session(service, request.session_id)
    return await _submit(service, session_id, ChatIntent(text=request.message))


@app.post("/chat/analyze", response_model=TurnResponse)
async def chat_analyze(request: ImageRequest):
    """
    Analyze an attached image. Without a message the model is asked to
    "Analyze this image in detail." A successful analysis clears the session's active image.
    """
    service = _require_chat_service()
    image = _decode_request_image(request)
    if image is None:
        raise HTTPException(status_code=400, detail="An image is required for analysis.")
    session_id = _open_session(service, request.session_id)
    return await _submit(service, session_id, AnalyzeImageIntent(image=image, text=request.message))


@app.post("/chat/edit", response_model=TurnResponse)
async def chat_edit(request: ImageRequest):
    """
    Edit an image. If no image is attached, the session's active image (the last
    edited or generated one) is used. An edited image becomes the new active image.
    """
    service = _require_chat_service()
    image = _decode_request_image(request)
    session_id = _open_session(service, request.session_id)
    try:
        intent = service.build_edit_intent(session_id, request.message, image)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return await _submit(service, session_id, intent)


@app.post("/chat/generate", response_model=TurnResponse)
async def chat_generate(request: ChatRequest):
    """Generate an image from a prompt. Rate limits are retried with growing pauses (2s to 10s)."""
    service = _require_chat_service()
    session_id = _open_session(service, request.session_id)
    return await _submit(service, session_id, GenerateImageIntent(text=request.message))


@app.get("/chat/history/{session_id}", response_model=ChatHistory)
async def get_chat_history(session_id: str):
    """
    Return every turn of a session in order, images as data URLs.
    Unknown sessions return an empty list.
    """
    service = _require_chat_service()
    turns = service.get_chat_history(session_id)
    return ChatHistory(
        session_id=session_id,
        messages=[TurnOut.from_turn(t) for t in turns],
        has_active_image=service.get_active_image(session_id) is not None,
    )


# -------------------------------------------------------------------------
# STANDALONE RUN (python -m mova.main)
# -------------------------------------------------------------------------
def run():
    """Start the uvicorn server (same as run.py); used if someone does python -m mova.main"""
    uvicorn.run(
        "mova.main:app",
        host=HOST,
        port=PORT,
        reload=True,
        log_level="info"
    )

if __name__ == "__main__":
    run()
