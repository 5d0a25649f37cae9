"""
REQUEST ORCHESTRATOR MODULE
===========================

Translates one user intent into one or more backend calls and applies the
retry/fallback policy for that kind of call. Every public operation is a thin
instantiation of _attempt_with_policy(), parameterized by:

  - the ordered candidate models,
  - a RetryPolicy (attempt budget, delay schedule, fallback vs same model),
  - the BackendRequest to send,
  - an extractor that turns a BackendResponse into the result (or raises).

POLICIES:
  chat           - fall through CHAT_MODELS on rate limits, 1s between models
  analyze_image  - fall through ANALYZE_MODELS on rate limits, 1s between models
  edit_image     - EDIT_MODEL, 2 attempts, 2s between them
  generate_image - GENERATE_MODEL, first attempt + 5 retries, 2s/4s/6s/8s/10s

FAILURES:
  Each raw failure is classified exactly once (classify_failure). Only
  RATE_LIMIT is retried, and only while the attempt budget and the request
  deadline allow it; anything else is raised at once. When the budget runs out
  the last classified failure is raised. EMPTY_RESPONSE and NO_CANDIDATES come
  from the extractor and are never retried.

Cancelling the awaiting task cancels the in-flight call or the pending backoff;
CancelledError is not classified and propagates unchanged.
"""

import asyncio
import logging
import time
from typing import Awaitable, Callable, Optional, TypeVar

import config
from mova.models import EditResult, GenerationResult, ImagePayload
from mova.services.errors import ClassifiedError, ErrorKind, classify_failure
from mova.services.gemini_backend import BackendRequest, BackendResponse, GenerativeBackend
from mova.utils.retry import RetryPolicy, fallback_policy, flat_delay, linear_delay


logger = logging.getLogger("mova")

T = TypeVar("T")

EMPTY_CHAT_MESSAGE = "The model returned an empty response, possibly due to safety filters."
EMPTY_ANALYSIS_MESSAGE = "The model returned an empty analysis."
NO_CANDIDATES_MESSAGE = "No image was generated. The request might have been blocked."


# ==============================================================================
# RESPONSE EXTRACTORS
# ==============================================================================

def _require_text(message: str) -> Callable[[BackendResponse], str]:
    def extract(response: BackendResponse) -> str:
        if not response.text:
            raise ClassifiedError(message, ErrorKind.EMPTY_RESPONSE, response)
        return response.text
    return extract


def _collect_parts(response: BackendResponse):
    """Concatenate the text parts of the first candidate and keep its image part (last one wins)."""
    if not response.candidates:
        raise ClassifiedError(NO_CANDIDATES_MESSAGE, ErrorKind.NO_CANDIDATES, response)
    text = ""
    image: Optional[ImagePayload] = None
    for part in response.candidates[0]:
        if part.inline_image is not None:
            image = part.inline_image
        elif part.text:
            text += part.text
    return text, image


def _extract_edit(response: BackendResponse) -> EditResult:
    text, image = _collect_parts(response)
    return EditResult(text=text, image=image)


def _extract_generation(response: BackendResponse) -> GenerationResult:
    text, image = _collect_parts(response)
    return GenerationResult(text=text, image=image)


# ==============================================================================
# ORCHESTRATOR
# ==============================================================================

class RequestOrchestrator:
    """
    Owns all retry timing and error classification for calls to the generative backend.

    `sleep` and `clock` are injectable so tests can record backoff delays without
    waiting; production uses asyncio.sleep and time.monotonic.
    """

    def __init__(
        self,
        backend: GenerativeBackend,
        chat_models: tuple = config.CHAT_MODELS,
        analyze_models: tuple = config.ANALYZE_MODELS,
        edit_model: str = config.EDIT_MODEL,
        generate_model: str = config.GENERATE_MODEL,
        deadline_seconds: Optional[float] = config.REQUEST_DEADLINE_SECONDS,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
        clock: Callable[[], float] = time.monotonic,
    ):
        if not chat_models or not analyze_models:
            raise ValueError("Candidate model lists must not be empty")
        self.backend = backend
        self.chat_models = tuple(chat_models)
        self.analyze_models = tuple(analyze_models)
        self.edit_models = (edit_model,)
        self.generate_models = (generate_model,)
        self.deadline_seconds = deadline_seconds
        self._sleep = sleep
        self._clock = clock

        self.chat_policy = fallback_policy(self.chat_models, config.FALLBACK_DELAY_MS)
        self.analyze_policy = fallback_policy(self.analyze_models, config.FALLBACK_DELAY_MS)
        self.edit_policy = RetryPolicy(
            max_attempts=config.EDIT_MAX_ATTEMPTS,
            delay_ms=flat_delay(config.EDIT_DELAY_MS),
        )
        self.generate_policy = RetryPolicy(
            max_attempts=config.GENERATE_MAX_RETRIES + 1,
            delay_ms=linear_delay(config.GENERATE_DELAY_STEP_MS),
        )

    # --------------------------------------------------------------------------
    # PUBLIC OPERATIONS
    # --------------------------------------------------------------------------

    async def chat(self, message: str) -> str:
        request = BackendRequest(text=message, system_instruction=config.MOVA_SYSTEM_PROMPT)
        return await self._attempt_with_policy(
            "chat", self.chat_models, self.chat_policy, request, _require_text(EMPTY_CHAT_MESSAGE)
        )

    async def analyze_image(self, image: bytes, text: str = "", media_type: str = "image/png") -> str:
        request = BackendRequest(
            text=text or config.DEFAULT_ANALYZE_PROMPT,
            image=ImagePayload(data=image, media_type=media_type),
        )
        return await self._attempt_with_policy(
            "analyze_image", self.analyze_models, self.analyze_policy, request,
            _require_text(EMPTY_ANALYSIS_MESSAGE),
        )

    async def edit_image(self, image: bytes, text: str = "", media_type: str = "image/png") -> EditResult:
        request = BackendRequest(
            text=text or config.DEFAULT_EDIT_PROMPT,
            image=ImagePayload(data=image, media_type=media_type),
        )
        return await self._attempt_with_policy(
            "edit_image", self.edit_models, self.edit_policy, request, _extract_edit
        )

    async def generate_image(self, text: str) -> GenerationResult:
        request = BackendRequest(text=text, response_modalities=("TEXT", "IMAGE"))
        return await self._attempt_with_policy(
            "generate_image", self.generate_models, self.generate_policy, request, _extract_generation
        )

    # --------------------------------------------------------------------------
    # GENERIC ATTEMPT LOOP
    # --------------------------------------------------------------------------

    async def _attempt_with_policy(
        self,
        operation: str,
        models: tuple,
        policy: RetryPolicy,
        request: BackendRequest,
        extract: Callable[[BackendResponse], T],
    ) -> T:
        deadline = self._clock() + self.deadline_seconds if self.deadline_seconds else None
        last_error: Optional[ClassifiedError] = None
        last_exc: Optional[Exception] = None

        for attempt in range(policy.max_attempts):
            model = policy.model_for(models, attempt)
            if attempt:
                delay = policy.delay_seconds(attempt - 1)
                if deadline is not None and self._clock() + delay >= deadline:
                    logger.warning("[%s] request deadline reached, not waiting %.1fs for %s", operation, delay, model)
                    break
                logger.warning("[%s] rate limited, trying %s in %.1fs", operation, model, delay)
                await self._sleep(delay)

            logger.info("[%s] attempt %d/%d with model %s", operation, attempt + 1, policy.max_attempts, model)
            try:
                response = await self._dispatch(model, request, deadline)
            except Exception as exc:
                verdict = classify_failure(exc)
                if not verdict.retriable:
                    logger.warning("[%s] %s on %s, not retrying: %s", operation, verdict.error.kind.value, model, exc)
                    raise verdict.error from exc
                last_error, last_exc = verdict.error, exc
                continue

            try:
                result = extract(response)
            except ClassifiedError as error:
                logger.warning("[%s] %s from %s", operation, error.kind.value, model)
                raise
            logger.info("[%s] succeeded with model %s", operation, model)
            return result
        else:
            logger.warning("[%s] rate limited, no attempts left", operation)
        raise last_error from last_exc

    async def _dispatch(self, model: str, request: BackendRequest, deadline: Optional[float]) -> BackendResponse:
        if deadline is None:
            return await self.backend.generate(model, request)
        remaining = deadline - self._clock()
        if remaining <= 0:
            raise asyncio.TimeoutError(f"request deadline exceeded before calling {model}")
        return await asyncio.wait_for(self.backend.generate(model, request), timeout=remaining)
