"""Segmentation of a session's transcripts into thematic blocks (L0 to L1)."""

from __future__ import annotations

import json
import uuid
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any

from azmem.l0 import L0Store
from azmem.l1 import Block, L1Store, Segmentation
from azmem.llm import GenerationRequest, Llm
from azmem.session import SessionMode

PROMPT_VERSION = "v1"

PROMPT_V1_SYSTEM = (
    "Tu es un assistant qui segmente des transcripts en blocs thématiques cohérents.\n"
    "\n"
    "Pour chaque bloc :\n"
    "- identifie un sujet court (topic, ≤ 60 caractères) ;\n"
    "- liste les `id` des transcripts qui le composent dans l'ordre chronologique ;\n"
    "- écris un `content` paraphrasé propre, en français, fidèle aux sources.\n"
    "\n"
    "Réponds UNIQUEMENT avec un JSON conforme au schéma :\n"
    '{"blocks":[{"topic":string,"transcript_ids":[string,...],"content":string},...]}\n'
    "\n"
    "Sources fournies dans le prochain message sous forme JSON : "
    '[{"id":string,"timestamp":string,"content":string},...].'
)

_TEMPERATURE = 0.2
_SNIPPET_LENGTH = 500


class SegmentError(Exception):
    """Base error raised while segmenting a session."""


class EmptySessionError(SegmentError):
    """The session has no transcript visible in the current mode."""

    def __init__(self, session_id: str) -> None:
        super().__init__(f"aucun transcript pour la session {session_id}")
        self.session_id = session_id


class SegmentParseError(SegmentError):
    """The model's answer could not be understood."""

    def __init__(self, detail: str) -> None:
        super().__init__(f"parsing réponse LLM: {detail}")
        self.detail = detail


@dataclass(frozen=True)
class _LlmBlock:
    topic: str
    transcript_ids: list[str]
    content: str


def _now_rfc3339() -> str:
    return datetime.now(timezone.utc).isoformat().replace("+00:00", "Z")


def _block_from_json(item: Any) -> _LlmBlock:
    if not isinstance(item, dict):
        raise ValueError("bloc: objet attendu")
    topic = item.get("topic")
    content = item.get("content")
    ids = item.get("transcript_ids")
    if not isinstance(topic, str):
        raise ValueError("bloc: champ 'topic' manquant ou invalide")
    if not isinstance(content, str):
        raise ValueError("bloc: champ 'content' manquant ou invalide")
    if not isinstance(ids, list) or not all(isinstance(i, str) for i in ids):
        raise ValueError("bloc: champ 'transcript_ids' manquant ou invalide")
    return _LlmBlock(topic=topic, transcript_ids=list(ids), content=content)


def _parse_response(text: str) -> list[_LlmBlock]:
    try:
        data = json.loads(text)
        if not isinstance(data, dict) or not isinstance(data.get("blocks"), list):
            raise ValueError("champ 'blocks' manquant ou invalide")
        return [_block_from_json(item) for item in data["blocks"]]
    except ValueError as exc:
        snippet = text[:_SNIPPET_LENGTH]
        raise SegmentParseError(
            f"{exc} :: réponse brute (tronquée): {snippet}"
        ) from exc


def segment_session(
    l0: L0Store,
    l1: L1Store,
    llm: Llm,
    model: str,
    session_id: str,
    mode: SessionMode,
) -> Segmentation:
    """Ask the model to split a session into blocks and record them in L1.

    In connected mode sensitive transcripts never reach the prompt. Each
    block is sensitive when any of its known sources is, and also when the
    model cited no known source at all. Unknown transcript ids are dropped.
    """
    transcripts = l0.list_session(session_id, mode.read_filter())
    if not transcripts:
        raise EmptySessionError(session_id)

    user_prompt = json.dumps(
        [{"id": t.id, "timestamp": t.timestamp, "content": t.content} for t in transcripts],
        ensure_ascii=False,
        separators=(",", ":"),
    )

    response = llm.generate(
        GenerationRequest(
            system=PROMPT_V1_SYSTEM,
            user=user_prompt,
            model=model,
            temperature=_TEMPERATURE,
            json_mode=True,
        )
    )
    parsed = _parse_response(response.text)

    by_id = {t.id: t for t in transcripts}

    segmentation = Segmentation(
        id=str(uuid.uuid4()),
        created_at=_now_rfc3339(),
        session_id=session_id,
        model=model,
        prompt_version=PROMPT_VERSION,
        notes=None,
    )

    blocks: list[Block] = []
    sources: list[tuple[str, str]] = []
    for seq, item in enumerate(parsed):
        block_id = str(uuid.uuid4())
        known = [by_id[tid] for tid in item.transcript_ids if tid in by_id]
        sensitivity = any(t.sensitivity for t in known) if known else True
        blocks.append(
            Block(
                id=block_id,
                segmentation_id=segmentation.id,
                seq=seq,
                topic=item.topic,
                content=item.content,
                sensitivity=sensitivity,
            )
        )
        sources.extend((block_id, tid) for tid in item.transcript_ids if tid in by_id)

    l1.record(segmentation, blocks, sources)
    return segmentation