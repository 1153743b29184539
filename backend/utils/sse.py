"""
Helpers for the provider's SSE stream.

``SSELineBuffer`` turns arbitrarily split byte chunks into complete lines and
``decode_provider_line`` turns one ``data:`` line into typed events.
"""
from __future__ import annotations

import codecs
import json
from dataclasses import dataclass
from typing import Any, Iterable, Iterator, List, Optional, Union

from backend.models.chat_model import TokenUsage
from backend.services.errors import ParseError
from backend.services.llm_services import normalize_usage

DATA_PREFIX = "data: "
DONE_MARKER = "[DONE]"


@dataclass(frozen=True)
class DeltaChunk:
    content: str


@dataclass(frozen=True)
class UsageChunk:
    usage: TokenUsage


@dataclass(frozen=True)
class DoneSentinel:
    pass


@dataclass(frozen=True)
class Unrecognized:
    payload: Any


ProviderEvent = Union[DeltaChunk, UsageChunk, DoneSentinel, Unrecognized]


class SSELineBuffer:
    """Incremental UTF-8 decoder that only releases complete lines."""

    def __init__(self) -> None:
        self._decoder = codecs.getincrementaldecoder("utf-8")(errors="replace")
        self._pending = ""

    def feed(self, chunk: bytes) -> List[str]:
        self._pending += self._decoder.decode(chunk)
        *lines, self._pending = self._pending.split("\n")
        return [line.rstrip("\r") for line in lines]

    def flush(self) -> List[str]:
        self._pending += self._decoder.decode(b"", final=True)
        rest, self._pending = self._pending, ""
        return [rest.rstrip("\r")] if rest.strip() else []


def iter_lines(chunks: Iterable[bytes]) -> Iterator[str]:
    buffer = SSELineBuffer()
    for chunk in chunks:
        yield from buffer.feed(chunk)
    yield from buffer.flush()


def data_of(line: str) -> Optional[str]:
    """Payload of an SSE ``data:`` line, or None for anything else."""
    line = line.strip()
    if not line.startswith(DATA_PREFIX):
        return None
    return line[len(DATA_PREFIX):]


def decode_provider_line(data: str) -> List[ProviderEvent]:
    """
    Decode one provider payload.

    A payload may carry a text delta, usage, or both (some providers attach
    usage to the last delta). Raises ``ParseError`` on malformed JSON.
    """
    if data.strip() == DONE_MARKER:
        return [DoneSentinel()]
    try:
        parsed = json.loads(data)
    except ValueError as e:
        raise ParseError(f"Failed to parse SSE data: {data!r}") from e

    if not isinstance(parsed, dict):
        return [Unrecognized(parsed)]

    events: List[ProviderEvent] = []
    choices = parsed.get("choices")
    if isinstance(choices, list) and choices and isinstance(choices[0], dict):
        delta = choices[0].get("delta") or {}
        content = delta.get("content") if isinstance(delta, dict) else None
        if isinstance(content, str) and content:
            events.append(DeltaChunk(content))
    if isinstance(parsed.get("usage"), dict):
        events.append(UsageChunk(normalize_usage(parsed["usage"])))

    return events or [Unrecognized(parsed)]
