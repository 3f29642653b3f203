"""Text generation and embedding backends used by the pipeline stages."""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass


class LlmError(Exception):
    """Base error raised by generation and embedding backends."""

    prefix = "llm"

    def __init__(self, detail: str) -> None:
        super().__init__(f"{self.prefix}: {detail}")
        self.detail = detail


class HttpError(LlmError):
    """The backend could not be reached or answered with an error status."""

    prefix = "http"


class DecodeError(LlmError):
    """The backend answered with a body that could not be decoded."""

    prefix = "decode"


class BackendError(LlmError):
    """The backend answered, but with an unusable result."""

    prefix = "backend"


@dataclass(frozen=True)
class GenerationRequest:
    """A single text generation request."""

    system: str
    user: str
    model: str
    temperature: float
    json_mode: bool


@dataclass(frozen=True)
class GenerationResponse:
    """The text produced by a generation request."""

    text: str


class Llm(ABC):
    """A backend that generates text."""

    @abstractmethod
    def generate(self, request: GenerationRequest) -> GenerationResponse:
        """Run one generation; raise :class:`LlmError` on failure."""


class EmbeddingsLlm(ABC):
    """A backend that turns text into embedding vectors."""

    @abstractmethod
    def embed(self, model: str, text: str) -> list[float]:
        """Embed ``text`` with ``model``; raise :class:`LlmError` on failure."""