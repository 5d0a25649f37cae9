"""
GEMINI BACKEND MODULE
=====================

Thin wrapper around the google-genai SDK. It is the only code that talks to the
network; the orchestrator sees just the GenerativeBackend protocol below, so
tests can swap in a scripted fake.

The client is built once, explicitly, with the API key. A missing key raises
MissingCredentialError here, before any request exists.

REQUEST SHAPES:
  text only            -> contents = "<text>"
  image + instruction  -> contents = [Part(inline image), Part(text)]
  system_instruction / response_modalities go into GenerateContentConfig.

RESPONSE SHAPE:
  BackendResponse.text        - concatenated text parts of the first candidate (None if none)
  BackendResponse.candidates  - every candidate as a list of BackendPart (text or inline image)
"""

import logging
from dataclasses import dataclass, field
from typing import List, Optional, Protocol, Sequence

from google import genai
from google.genai import types

from mova.models import ImagePayload
from mova.services.errors import MissingCredentialError


logger = logging.getLogger("mova")


# ==============================================================================
# BACKEND CALL SHAPES
# ==============================================================================

@dataclass(frozen=True)
class BackendRequest:
    text: str
    image: Optional[ImagePayload] = None
    system_instruction: Optional[str] = None
    response_modalities: Optional[Sequence[str]] = None


@dataclass(frozen=True)
class BackendPart:
    text: Optional[str] = None
    inline_image: Optional[ImagePayload] = None


@dataclass(frozen=True)
class BackendResponse:
    text: Optional[str] = None
    candidates: List[List[BackendPart]] = field(default_factory=list)


class GenerativeBackend(Protocol):
    async def generate(self, model: str, request: BackendRequest) -> BackendResponse:
        ...


# ==============================================================================
# GEMINI IMPLEMENTATION
# ==============================================================================

def _mask_key(key: str) -> str:
    return f"{key[:4]}...{key[-4:]}" if len(key) > 8 else "****"


class GeminiBackend:
    """GenerativeBackend backed by google.genai.Client (async surface: client.aio)."""

    def __init__(self, api_key: str, client: Optional[genai.Client] = None):
        if not api_key:
            raise MissingCredentialError()
        self._client = client or genai.Client(api_key=api_key)
        logger.info("Gemini client initialized (key %s)", _mask_key(api_key))

    async def generate(self, model: str, request: BackendRequest) -> BackendResponse:
        response = await self._client.aio.models.generate_content(
            model=model,
            contents=self._build_contents(request),
            config=self._build_config(request),
        )
        return self._normalize(response)

    async def aclose(self) -> None:
        close = getattr(self._client.aio, "aclose", None)
        if close is not None:
            await close()

    @staticmethod
    def _build_contents(request: BackendRequest):
        if request.image is None:
            return request.text
        return [
            types.Part.from_bytes(data=request.image.data, mime_type=request.image.media_type),
            types.Part.from_text(text=request.text),
        ]

    @staticmethod
    def _build_config(request: BackendRequest) -> Optional[types.GenerateContentConfig]:
        if not request.system_instruction and not request.response_modalities:
            return None
        return types.GenerateContentConfig(
            system_instruction=request.system_instruction,
            response_modalities=list(request.response_modalities) if request.response_modalities else None,
        )

    @staticmethod
    def _normalize(response) -> BackendResponse:
        candidates: List[List[BackendPart]] = []
        for candidate in response.candidates or []:
            content = getattr(candidate, "content", None)
            parts: List[BackendPart] = []
            for part in (getattr(content, "parts", None) or []):
                # Thought summaries are not part of the answer.
                if getattr(part, "thought", False):
                    continue
                inline = getattr(part, "inline_data", None)
                if inline is not None and inline.data:
                    parts.append(BackendPart(
                        inline_image=ImagePayload(data=inline.data, media_type=inline.mime_type or "image/png")
                    ))
                elif part.text:
                    parts.append(BackendPart(text=part.text))
            candidates.append(parts)

        text = None
        if candidates:
            text = "".join(p.text for p in candidates[0] if p.text) or None
        return BackendResponse(text=text, candidates=candidates)
