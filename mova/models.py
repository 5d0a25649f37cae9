"""
DATA MODELS MODULE
==================

This file defines the Pydantic models used for conversation state, intents,
and the HTTP API. FastAPI uses the request/response models to validate
incoming JSON and to serialize responses; the chat service and orchestrator
use the turn and intent models internally.

MODELS:
  ImagePayload      - Decoded image bytes plus declared media type.
  ConversationTurn  - One immutable turn in a session (user or assistant, text, image, error flag).
  *Intent           - What the user asked for on one submission (chat, analyze, edit, generate).
  EditResult / GenerationResult - Text plus optional image returned by the image operations.
  ChatRequest / ImageRequest    - Bodies of the POST /chat* endpoints.
  TurnOut / TurnResponse / ChatHistory - JSON shapes returned to the UI.
"""

from uuid import uuid4
from typing import List, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field

from config import MAX_MESSAGE_LENGTH
from mova.services.errors import ErrorKind
from mova.utils.images import to_data_url

# ==============================================================================
# CONVERSATION STATE
# ==============================================================================

class ImagePayload(BaseModel):
    """Raw image bytes and their media type (e.g. image/png)."""
    model_config = ConfigDict(frozen=True)

    data: bytes
    media_type: str = "image/png"


class ConversationTurn(BaseModel):
    """
    A single turn in a conversation. Frozen: once appended to a session it never changes.
    Error turns carry is_error=True and the classified error_kind so the UI can render a banner.
    """
    model_config = ConfigDict(frozen=True)

    id: str = Field(default_factory=lambda: uuid4().hex)
    role: Literal["user", "assistant"]
    text: str = ""
    image: Optional[ImagePayload] = None
    is_error: bool = False
    error_kind: Optional[ErrorKind] = None


# ==============================================================================
# INTENTS
# ==============================================================================
# One intent is built per submission from the input text and optional image.

class ChatIntent(BaseModel):
    model_config = ConfigDict(frozen=True)

    kind: Literal["chat"] = "chat"
    text: str


class AnalyzeImageIntent(BaseModel):
    model_config = ConfigDict(frozen=True)

    kind: Literal["analyze"] = "analyze"
    image: ImagePayload
    text: str = ""


class EditImageIntent(BaseModel):
    model_config = ConfigDict(frozen=True)

    kind: Literal["edit"] = "edit"
    image: ImagePayload
    text: str = ""


class GenerateImageIntent(BaseModel):
    model_config = ConfigDict(frozen=True)

    kind: Literal["generate"] = "generate"
    text: str


Intent = Union[ChatIntent, AnalyzeImageIntent, EditImageIntent, GenerateImageIntent]


# ==============================================================================
# OPERATION RESULTS
# ==============================================================================

class EditResult(BaseModel):
    """Text parts concatenated in order, plus the image part if the model returned one."""
    text: str = ""
    image: Optional[ImagePayload] = None


class GenerationResult(BaseModel):
    text: str = ""
    image: Optional[ImagePayload] = None


# ==============================================================================
# API REQUEST / RESPONSE MODELS
# ==============================================================================

class ChatRequest(BaseModel):
    """
    Request body for POST /chat and POST /chat/generate.

    - message: Required, 1-32,000 characters (empty or too long returns 422).
    - session_id: Optional. If omitted, the server creates a new session and returns its ID.
    """
    message: str = Field(..., min_length=1, max_length=MAX_MESSAGE_LENGTH)
    session_id: Optional[str] = None


class ImageRequest(BaseModel):
    """
    Request body for POST /chat/analyze and POST /chat/edit.

    - image: base64 string or a data URL ("data:image/png;base64,...").
      Optional for /chat/edit, which falls back to the session's active image.
    - media_type: declared type of the image; taken from the data URL when omitted.
    - message: optional instruction; each endpoint has its own default.
    """
    message: str = Field("", max_length=MAX_MESSAGE_LENGTH)
    image: Optional[str] = None
    media_type: Optional[str] = None
    session_id: Optional[str] = None


class TurnOut(BaseModel):
    """JSON form of a ConversationTurn; the image travels as a data URL."""
    id: str
    role: str
    text: str
    image: Optional[str] = None
    is_error: bool = False
    error_kind: Optional[str] = None

    @classmethod
    def from_turn(cls, turn: ConversationTurn) -> "TurnOut":
        return cls(
            id=turn.id,
            role=turn.role,
            text=turn.text,
            image=to_data_url(turn.image.data, turn.image.media_type) if turn.image else None,
            is_error=turn.is_error,
            error_kind=turn.error_kind.value if turn.error_kind else None,
        )


class TurnResponse(BaseModel):
    """
    Response body for every POST /chat* endpoint: the assistant turn appended by
    this submission (a success or an error turn) and the session it belongs to.
    """
    session_id: str
    turn: TurnOut


class ChatHistory(BaseModel):
    """All turns of a session in insertion order, and whether an image is active for editing."""
    session_id: str
    messages: List[TurnOut]
    has_active_image: bool = False
