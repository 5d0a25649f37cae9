"""Scripted stand-ins for the Gemini backend and the orchestrator's clock."""

from __future__ import annotations

from typing import Any

from mova.models import ImagePayload
from mova.services.gemini_backend import BackendPart, BackendRequest, BackendResponse
from mova.services.orchestrator import RequestOrchestrator

CHAT_MODELS = ("chat-a", "chat-b", "chat-c")
ANALYZE_MODELS = ("vision-a", "vision-b")
EDIT_MODEL = "edit-model"
GENERATE_MODEL = "gen-model"


class FakeAPIError(Exception):
    """Shaped like google.genai.errors.APIError: .message plus a numeric .code."""

    def __init__(self, message: str, code: int | None = None) -> None:
        super().__init__(f"{code} {message}" if code is not None else message)
        self.message = message
        self.code = code


def rate_limited() -> FakeAPIError:
    return FakeAPIError("Resource has been exhausted (e.g. check quota).", code=429)


def text_response(text: str | None) -> BackendResponse:
    parts = [BackendPart(text=text)] if text else []
    return BackendResponse(text=text, candidates=[parts])


def image_response(text: str = "", data: bytes = b"\x89PNG-edited") -> BackendResponse:
    parts = []
    if text:
        parts.append(BackendPart(text=text))
    parts.append(BackendPart(inline_image=ImagePayload(data=data, media_type="image/png")))
    return BackendResponse(text=text or None, candidates=[parts])


class FakeBackend:
    """Returns (or raises) the scripted outcomes in order and records every call."""

    def __init__(self, outcomes: list[Any]) -> None:
        self.outcomes = list(outcomes)
        self.calls: list[tuple[str, BackendRequest]] = []

    async def generate(self, model: str, request: BackendRequest) -> BackendResponse:
        self.calls.append((model, request))
        if not self.outcomes:
            raise AssertionError("unexpected backend call")
        outcome = self.outcomes.pop(0)
        if isinstance(outcome, BaseException):
            raise outcome
        return outcome

    @property
    def models(self) -> list[str]:
        return [model for model, _ in self.calls]


class FakeClock:
    """Monotonic clock whose sleep records the delay and advances time instantly."""

    def __init__(self) -> None:
        self.now = 0.0
        self.sleeps: list[float] = []

    def __call__(self) -> float:
        return self.now

    async def sleep(self, seconds: float) -> None:
        self.sleeps.append(seconds)
        self.now += seconds


def make_orchestrator(
    outcomes: list[Any], clock: FakeClock | None = None, **kwargs: Any
) -> tuple[RequestOrchestrator, FakeBackend, FakeClock]:
    clock = clock or FakeClock()
    backend = FakeBackend(outcomes)
    kwargs.setdefault("deadline_seconds", 120.0)
    orchestrator = RequestOrchestrator(
        backend,
        chat_models=CHAT_MODELS,
        analyze_models=ANALYZE_MODELS,
        edit_model=EDIT_MODEL,
        generate_model=GENERATE_MODEL,
        sleep=clock.sleep,
        clock=clock,
        **kwargs,
    )
    return orchestrator, backend, clock
