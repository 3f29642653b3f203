"""Extraction of typed draft facts from a segmentation's blocks (L1 to L2)."""

from __future__ import annotations

import json
import uuid
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any

from azmem.l1 import L1Store
from azmem.l2 import Fact, L2Store
from azmem.llm import GenerationRequest, Llm
from azmem.session import SessionMode

PROMPT_VERSION = "v1"

PROMPT_V1_SYSTEM = (
    "Tu es un assistant qui extrait des faits typés à partir de blocs thématiques (L1).\n"
    "\n"
    "Pour chaque fait identifie :\n"
    '- `type` : un type court en string (ex: "note", "event", "measurement", '
    '"transaction", "recipe"). '
    "La liste est ouverte — propose des types pertinents au contenu.\n"
    "- `payload` : un objet JSON décrivant le fait (champs libres, adaptés au type).\n"
    "- `transcript_ids` : liste des `id` de transcripts L0 qui ont nourri le fait.\n"
    "- `block_id` : id du bloc L1 d'origine (parmi les blocs fournis).\n"
    "- `sensitivity` : booléen, défaut `true` (conservateur).\n"
    "\n"
    "N'invente pas de faits qui ne sont pas dans les blocs. "
    "Pas de spéculation, pas de remplissage.\n"
    "Si un bloc ne contient pas de fait actionnable, n'émets rien pour ce bloc.\n"
    "\n"
    "Réponds UNIQUEMENT en JSON conforme :\n"
    '{"facts":[{"type":string,"payload":object,"transcript_ids":[string,...],'
    '"block_id":string,"sensitivity":bool},...]}'
)

_TEMPERATURE = 0.2
_SNIPPET_LENGTH = 500


class ExtractError(Exception):
    """Base error raised while extracting facts."""


class EmptySegmentationError(ExtractError):
    """The segmentation has no block visible in the current mode."""

    def __init__(self, segmentation_id: str) -> None:
        super().__init__(f"aucun bloc pour la segmentation {segmentation_id}")
        self.segmentation_id = segmentation_id


class ExtractParseError(ExtractError):
    """The model's answer could not be understood."""

    def __init__(self, detail: str) -> None:
        super().__init__(f"parsing réponse LLM: {detail}")
        self.detail = detail


@dataclass(frozen=True)
class _LlmFact:
    fact_type: str
    payload: Any
    transcript_ids: list[str]
    block_id: str | None
    sensitivity: bool


def _now_rfc3339() -> str:
    return datetime.now(timezone.utc).isoformat().replace("+00:00", "Z")


def _fact_from_json(item: Any) -> _LlmFact:
    if not isinstance(item, dict):
        raise ValueError("fait: objet attendu")
    fact_type = item.get("type")
    if not isinstance(fact_type, str):
        raise ValueError("fait: champ 'type' manquant ou invalide")
    if "payload" not in item:
        raise ValueError("fait: champ 'payload' manquant")
    ids = item.get("transcript_ids", [])
    if not isinstance(ids, list) or not all(isinstance(i, str) for i in ids):
        raise ValueError("fait: champ 'transcript_ids' invalide")
    block_id = item.get("block_id")
    if block_id is not None and not isinstance(block_id, str):
        raise ValueError("fait: champ 'block_id' invalide")
    sensitivity = item.get("sensitivity", True)
    if not isinstance(sensitivity, bool):
        raise ValueError("fait: champ 'sensitivity' invalide")
    return _LlmFact(
        fact_type=fact_type,
        payload=item["payload"],
        transcript_ids=list(ids),
        block_id=block_id,
        sensitivity=sensitivity,
    )


def _parse_response(text: str) -> list[_LlmFact]:
    try:
        data = json.loads(text)
        if not isinstance(data, dict) or not isinstance(data.get("facts"), list):
            raise ValueError("champ 'facts' manquant ou invalide")
        return [_fact_from_json(item) for item in data["facts"]]
    except ValueError as exc:
        snippet = text[:_SNIPPET_LENGTH]
        raise ExtractParseError(
            f"{exc} :: réponse brute (tronquée): {snippet}"
        ) from exc


def extract_from_segmentation(
    l1: L1Store,
    l2: L2Store,
    llm: Llm,
    model: str,
    segmentation_id: str,
    mode: SessionMode,
) -> list[Fact]:
    """Ask the model for facts found in a segmentation's blocks and store them as drafts.

    In connected mode sensitive blocks never reach the prompt. Facts citing a
    block that was not in the prompt are dropped; facts with no block are kept.
    Returns the inserted drafts in the model's order.
    """
    blocks = l1.blocks(segmentation_id, mode.read_filter())
    if not blocks:
        raise EmptySegmentationError(segmentation_id)

    user_prompt = json.dumps(
        [
            {
                "block_id": b.id,
                "topic": b.topic,
                "content": b.content,
                "transcript_ids": l1.block_sources(b.id),
            }
            for b in blocks
        ],
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

    known_blocks = {b.id for b in blocks}
    now = _now_rfc3339()

    inserted: list[Fact] = []
    for item in parsed:
        if item.block_id is not None and item.block_id not in known_blocks:
            continue
        payload = json.dumps(
            item.payload, ensure_ascii=False, separators=(",", ":"), sort_keys=True
        )
        fact = Fact(
            id=str(uuid.uuid4()),
            version=1,
            fact_type=item.fact_type,
            payload=payload,
            block_id=item.block_id,
            sensitivity=item.sensitivity,
            created_at=now,
            validated_at=None,
        )
        l2.insert(fact, item.transcript_ids)
        inserted.append(fact)
    return inserted