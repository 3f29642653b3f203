"""Client for a local Ollama server."""

from __future__ import annotations

import os
from typing import Any

import requests

from azmem.llm import (
    BackendError,
    DecodeError,
    EmbeddingsLlm,
    GenerationRequest,
    GenerationResponse,
    HttpError,
    Llm,
)

DEFAULT_URL = "http://localhost:11434"
ENV_OLLAMA_URL = "AZ_OLLAMA_URL"


class OllamaClient(Llm, EmbeddingsLlm):
    """Generation and embeddings through the Ollama HTTP API."""

    def __init__(self, base_url: str = DEFAULT_URL, timeout: float | None = None) -> None:
        self.base_url = base_url
        self.timeout = timeout

    @classmethod
    def from_env(cls) -> OllamaClient:
        """Build a client for the URL in the environment, or the default one."""
        return cls(os.environ.get(ENV_OLLAMA_URL, DEFAULT_URL))

    def _post(self, endpoint: str, body: dict[str, Any]) -> dict[str, Any]:
        url = f"{self.base_url.rstrip('/')}/api/{endpoint}"
        try:
            response = requests.post(url, json=body, timeout=self.timeout)
            response.raise_for_status()
        except requests.RequestException as exc:
            raise HttpError(str(exc)) from exc
        try:
            parsed = response.json()
        except ValueError as exc:
            raise DecodeError(str(exc)) from exc
        if not isinstance(parsed, dict):
            raise DecodeError(f"objet JSON attendu, reçu: {type(parsed).__name__}")
        return parsed

    def generate(self, request: GenerationRequest) -> GenerationResponse:
        prompt = (
            request.user
            if not request.system
            else f"{request.system}\n\n{request.user}"
        )
        body: dict[str, Any] = {
            "model": request.model,
            "prompt": prompt,
            "stream": False,
            "options": {"temperature": request.temperature},
        }
        if request.json_mode:
            body["format"] = "json"
        parsed = self._post("generate", body)
        text = parsed.get("response")
        if not isinstance(text, str):
            raise DecodeError("champ 'response' manquant ou invalide")
        return GenerationResponse(text=text)

    def embed(self, model: str, text: str) -> list[float]:
        parsed = self._post("embeddings", {"model": model, "prompt": text})
        raw = parsed.get("embedding")
        if not isinstance(raw, list):
            raise DecodeError("champ 'embedding' manquant ou invalide")
        try:
            vector = [float(x) for x in raw]
        except (TypeError, ValueError) as exc:
            raise DecodeError(str(exc)) from exc
        if not vector:
            raise BackendError(
                f"ollama a renvoyé un embedding vide pour le modèle '{model}'"
            )
        return vector