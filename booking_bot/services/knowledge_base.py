"""
Knowledge base lookups used when no booking question is pending.

Two backends:
1. QnAMakerKnowledgeBase - QnA Maker runtime ``generateAnswer`` endpoint over HTTP
2. LocalKnowledgeBase - question/answer pairs from a YAML file, fuzzy matched

Both return answers ranked best-first with scores on a 0-100 scale.
"""

from __future__ import annotations

import functools
import logging
import re
from dataclasses import dataclass, field
from pathlib import Path
from threading import Lock
from typing import Any, Dict, List, Protocol, Set, Tuple

import httpx
import yaml

from ..config import Settings
from ..models import AnswerCandidate
from .error_handling import UpstreamError

logger = logging.getLogger(__name__)

# QnA Maker answers with this id when nothing in the KB matched.
QNA_NO_MATCH_ID = -1

PUNCTUATION_PATTERN = re.compile(r"[^\w\s]+")


class KnowledgeBaseError(UpstreamError):
    """Raised when the knowledge base service cannot be reached or answers garbage."""


class KnowledgeBase(Protocol):
    async def get_answers(self, query: str) -> List[AnswerCandidate]: ...


# =============================================================================
# QnA Maker
# =============================================================================


class QnAMakerKnowledgeBase:
    """HTTP client for a published QnA Maker knowledge base."""

    def __init__(self, settings: Settings, transport: httpx.AsyncBaseTransport | None = None) -> None:
        self._settings = settings
        self._transport = transport

    @property
    def configured(self) -> bool:
        return bool(
            self._settings.qna_host and self._settings.qna_knowledge_base_id and self._settings.qna_endpoint_key
        )

    @property
    def url(self) -> str:
        host = self._settings.qna_host.rstrip("/")
        return f"{host}/knowledgebases/{self._settings.qna_knowledge_base_id}/generateAnswer"

    async def get_answers(self, query: str) -> List[AnswerCandidate]:
        if not self.configured:
            raise KnowledgeBaseError(
                "QNA_HOST, QNA_KNOWLEDGE_BASE_ID and QNA_ENDPOINT_KEY are required",
                reason="knowledge_base_not_configured",
            )
        payload = {
            "question": query,
            "top": self._settings.qna_top,
            "scoreThreshold": self._settings.knowledge_base_min_score,
        }
        headers = {
            "Content-Type": "application/json",
            "Authorization": f"EndpointKey {self._settings.qna_endpoint_key}",
        }
        timeout = httpx.Timeout(self._settings.http_timeout_seconds)
        async with httpx.AsyncClient(timeout=timeout, transport=self._transport) as client:
            try:
                response = await client.post(self.url, json=payload, headers=headers)
                response.raise_for_status()
                data = response.json()
            except httpx.HTTPStatusError as exc:
                logger.error(
                    "QnA Maker HTTP error: %s - %s", exc.response.status_code, exc.response.text
                )
                raise KnowledgeBaseError(
                    f"QnA Maker API error: {exc.response.status_code}", reason="knowledge_base_http_error"
                ) from exc
            except httpx.RequestError as exc:
                logger.error("QnA Maker connection error: %s", exc)
                raise KnowledgeBaseError(
                    f"QnA Maker connection error: {exc}", reason="knowledge_base_unreachable"
                ) from exc
            except ValueError as exc:
                raise KnowledgeBaseError(
                    "QnA Maker returned invalid JSON", reason="knowledge_base_bad_payload"
                ) from exc

        return self._parse_answers(data)

    @staticmethod
    def _parse_answers(data: Dict[str, Any]) -> List[AnswerCandidate]:
        answers: List[AnswerCandidate] = []
        for item in data.get("answers") or []:
            if item.get("id") == QNA_NO_MATCH_ID:
                continue
            score = float(item.get("score") or 0.0)
            text = item.get("answer")
            if score <= 0 or not text:
                continue
            answers.append(
                AnswerCandidate(text=text, score=score, questions=list(item.get("questions") or []))
            )
        answers.sort(key=lambda answer: answer.score, reverse=True)
        return answers


# =============================================================================
# Local YAML knowledge base
# =============================================================================


@dataclass
class KnowledgeBaseEntry:
    answer: str
    questions: List[str] = field(default_factory=list)


def normalize_text(text: str) -> str:
    return " ".join(PUNCTUATION_PATTERN.sub(" ", text.lower()).split())


def generate_ngrams(text: str, n: int = 3) -> Set[str]:
    if len(text) < n:
        return {text}
    return {text[i:i + n] for i in range(len(text) - n + 1)}


def ngram_similarity(s1: str, s2: str, n: int = 3) -> float:
    """Jaccard similarity of character n-grams."""
    if not s1 or not s2:
        return 0.0
    ngrams1 = generate_ngrams(s1, n)
    ngrams2 = generate_ngrams(s2, n)
    union = len(ngrams1 | ngrams2)
    if union == 0:
        return 0.0
    return len(ngrams1 & ngrams2) / union


def token_containment(question: str, query: str) -> float:
    """Share of the question's words that also appear in the query."""
    question_tokens = set(question.split())
    if not question_tokens:
        return 0.0
    return len(question_tokens & set(query.split())) / len(question_tokens)


def match_score(question: str, query: str) -> float:
    normalized_question = normalize_text(question)
    normalized_query = normalize_text(query)
    if not normalized_question or not normalized_query:
        return 0.0
    if normalized_question == normalized_query:
        return 100.0
    combined = 0.5 * ngram_similarity(normalized_question, normalized_query)
    combined += 0.5 * token_containment(normalized_question, normalized_query)
    return round(combined * 100, 2)


@functools.lru_cache(maxsize=4)
def _load_entries(path: Path) -> Tuple[KnowledgeBaseEntry, ...]:
    if not path.exists():
        raise FileNotFoundError(f"Knowledge base not found at {path}")
    with path.open("r", encoding="utf-8") as fp:
        data = yaml.safe_load(fp) or {}

    entries: List[KnowledgeBaseEntry] = []
    for raw in data.get("answers") or []:
        answer = str(raw.get("answer") or "").strip()
        questions = [str(q) for q in raw.get("questions") or [] if str(q).strip()]
        if not answer or not questions:
            logger.warning("knowledge_base.skip_entry path=%s entry=%r", path, raw)
            continue
        entries.append(KnowledgeBaseEntry(answer=answer, questions=questions))
    logger.info("knowledge_base.loaded path=%s entries=%d", path, len(entries))
    return tuple(entries)


class LocalKnowledgeBase:
    """Fuzzy question matching over a small YAML knowledge base."""

    def __init__(
        self,
        entries: List[KnowledgeBaseEntry],
        *,
        min_score: float = 50.0,
        top: int = 1,
    ) -> None:
        self._entries = list(entries)
        self._min_score = min_score
        self._top = max(1, top)

    @classmethod
    def from_yaml(cls, path: Path, *, min_score: float = 50.0, top: int = 1) -> "LocalKnowledgeBase":
        return cls(list(_load_entries(Path(path))), min_score=min_score, top=top)

    async def get_answers(self, query: str) -> List[AnswerCandidate]:
        scored: List[AnswerCandidate] = []
        for entry in self._entries:
            best_question = max(entry.questions, key=lambda question: match_score(question, query))
            score = match_score(best_question, query)
            if score < self._min_score:
                continue
            scored.append(AnswerCandidate(text=entry.answer, score=score, questions=[best_question]))
        scored.sort(key=lambda answer: answer.score, reverse=True)
        return scored[: self._top]


def build_knowledge_base(settings: Settings) -> KnowledgeBase:
    if settings.knowledge_base_backend == "qnamaker":
        knowledge_base = QnAMakerKnowledgeBase(settings)
        if not knowledge_base.configured:
            logger.warning("QnA Maker backend selected without host, knowledge base id or endpoint key")
        return knowledge_base
    return LocalKnowledgeBase.from_yaml(
        settings.knowledge_base_path,
        min_score=settings.knowledge_base_min_score,
        top=settings.qna_top,
    )


_knowledge_bases: Dict[Tuple[Any, ...], KnowledgeBase] = {}
_knowledge_bases_lock = Lock()


def _knowledge_base_key(settings: Settings) -> Tuple[Any, ...]:
    return (
        settings.knowledge_base_backend,
        str(settings.knowledge_base_path),
        settings.knowledge_base_min_score,
        settings.qna_top,
        settings.qna_host,
        settings.qna_knowledge_base_id,
        settings.qna_endpoint_key,
        settings.http_timeout_seconds,
    )


def get_knowledge_base(settings: Settings) -> KnowledgeBase:
    """Return the knowledge base for ``settings``, built once per configuration."""

    key = _knowledge_base_key(settings)
    with _knowledge_bases_lock:
        knowledge_base = _knowledge_bases.get(key)
        if knowledge_base is None:
            knowledge_base = build_knowledge_base(settings)
            _knowledge_bases[key] = knowledge_base
        return knowledge_base
