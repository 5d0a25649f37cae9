"""
CHAT SERVICE MODULE
===================

Keeps the in-memory conversation for each session and routes every submission
through the request orchestrator. Nothing is written to disk: sessions live in
memory, and past MAX_SESSIONS the least recently used idle session is dropped.

PER SUBMISSION:
  1. Reject it if the session already has a call in flight (SessionBusyError).
  2. Run the intent through the orchestrator (chat, analyze, edit or generate).
  3. Append the user turn and exactly one assistant turn: the reply on
     success, or an error turn carrying the classified error kind.

ACTIVE IMAGE:
  An edit or generation that returns an image makes it the session's active
  image, so the next edit can work on it without re-uploading. A successful
  analysis clears it.
"""

import logging
import re
import uuid
from dataclasses import dataclass, field
from typing import Dict, List, Optional

from config import DEFAULT_EDIT_REPLY, DEFAULT_GENERATE_REPLY, GREETING, MAX_SESSIONS
from mova.models import (
    AnalyzeImageIntent,
    ChatIntent,
    ConversationTurn,
    EditImageIntent,
    GenerateImageIntent,
    ImagePayload,
    Intent,
)
from mova.services.errors import ClassifiedError, ErrorKind
from mova.services.orchestrator import RequestOrchestrator


logger = logging.getLogger("mova")

UNEXPECTED_ERROR_MESSAGE = "I encountered an unexpected error processing your request."
_SESSION_ID_PATTERN = re.compile(r"^[A-Za-z0-9_-]{1,128}$")


class SessionBusyError(RuntimeError):
    """A second submission arrived while the session's previous one was still running."""


@dataclass
class ChatSession:
    session_id: str
    turns: List[ConversationTurn] = field(default_factory=list)
    active_image: Optional[ImagePayload] = None
    busy: bool = False


class ChatService:
    """Owns the session-local turn sequences; one instance per server process."""

    def __init__(self, orchestrator: RequestOrchestrator, max_sessions: int = MAX_SESSIONS):
        self.orchestrator = orchestrator
        self.max_sessions = max_sessions
        # Insertion order doubles as recency order: the first entry is the least recently used.
        self.sessions: Dict[str, ChatSession] = {}

    # --------------------------------------------------------------------------
    # SESSIONS
    # --------------------------------------------------------------------------

    @staticmethod
    def validate_session_id(session_id: str) -> None:
        """Raise ValueError unless the id is 1-128 letters, digits, '-' or '_'."""
        if not _SESSION_ID_PATTERN.match(session_id or ""):
            raise ValueError("Invalid session_id: use 1-128 letters, digits, '-' or '_'.")

    def get_or_create_session(self, session_id: Optional[str] = None) -> str:
        """Return an existing session id, or create the session (with its greeting turn)."""
        if session_id is None:
            session_id = str(uuid.uuid4())
        else:
            self.validate_session_id(session_id)

        if session_id in self.sessions:
            self._touch(session_id)
        else:
            self._evict_idle_sessions()
            session = ChatSession(session_id=session_id)
            session.turns.append(ConversationTurn(role="assistant", text=GREETING))
            self.sessions[session_id] = session
            logger.info("Created session %s", session_id)
        return session_id

    def _touch(self, session_id: str) -> None:
        self.sessions[session_id] = self.sessions.pop(session_id)

    def _evict_idle_sessions(self) -> None:
        """Drop least recently used sessions until a new one fits. Busy sessions are kept."""
        for session_id in [sid for sid, s in self.sessions.items() if not s.busy]:
            if len(self.sessions) < self.max_sessions:
                break
            del self.sessions[session_id]
            logger.info("Evicted idle session %s", session_id)

    def get_chat_history(self, session_id: str) -> List[ConversationTurn]:
        session = self.sessions.get(session_id)
        return list(session.turns) if session else []

    def get_active_image(self, session_id: str) -> Optional[ImagePayload]:
        session = self.sessions.get(session_id)
        return session.active_image if session else None

    def build_edit_intent(
        self, session_id: str, text: str, image: Optional[ImagePayload] = None
    ) -> EditImageIntent:
        """Edit the given image, or the session's active image when none is given."""
        image = image or self.get_active_image(session_id)
        if image is None:
            raise ValueError("No image to edit. Attach an image first.")
        return EditImageIntent(image=image, text=text)

    # --------------------------------------------------------------------------
    # SUBMISSION
    # --------------------------------------------------------------------------

    async def submit(self, session_id: str, intent: Intent) -> ConversationTurn:
        """
        Run one intent for a session and return the assistant turn it produced.
        Classified failures become error turns rather than exceptions.
        """
        session = self.sessions.get(session_id)
        if session is None:
            raise KeyError(f"Unknown session: {session_id}")
        if session.busy:
            raise SessionBusyError(f"Session {session_id} already has a request in flight")

        self._touch(session_id)
        session.busy = True
        try:
            user_turn = ConversationTurn(role="user", text=intent.text, image=getattr(intent, "image", None))
            try:
                reply = await self._run_intent(session, intent)
            except ClassifiedError as error:
                logger.warning("Request failed for session %s: %s", session_id, error)
                reply = ConversationTurn(
                    role="assistant", text=error.message, is_error=True, error_kind=error.kind
                )
            except Exception as e:
                logger.error("Unexpected error for session %s: %s", session_id, e, exc_info=True)
                reply = ConversationTurn(
                    role="assistant",
                    text=UNEXPECTED_ERROR_MESSAGE,
                    is_error=True,
                    error_kind=ErrorKind.UNKNOWN_ERROR,
                )
            session.turns.append(user_turn)
            session.turns.append(reply)
            return reply
        finally:
            session.busy = False

    async def _run_intent(self, session: ChatSession, intent: Intent) -> ConversationTurn:
        if isinstance(intent, ChatIntent):
            text = await self.orchestrator.chat(intent.text)
            return ConversationTurn(role="assistant", text=text)

        if isinstance(intent, AnalyzeImageIntent):
            text = await self.orchestrator.analyze_image(
                intent.image.data, intent.text, intent.image.media_type
            )
            session.active_image = None
            return ConversationTurn(role="assistant", text=text)

        if isinstance(intent, EditImageIntent):
            result = await self.orchestrator.edit_image(
                intent.image.data, intent.text, intent.image.media_type
            )
            if result.image is not None:
                session.active_image = result.image
            return ConversationTurn(role="assistant", text=result.text or DEFAULT_EDIT_REPLY, image=result.image)

        if isinstance(intent, GenerateImageIntent):
            result = await self.orchestrator.generate_image(intent.text)
            if result.image is not None:
                session.active_image = result.image
            return ConversationTurn(
                role="assistant", text=result.text or DEFAULT_GENERATE_REPLY, image=result.image
            )

        raise TypeError(f"Unsupported intent: {type(intent).__name__}")
