"""
Client side of the chat stream.

``ChatStream`` keeps the local message list for one chat session and turns the
backend's ``data: {...}`` envelopes into a live assistant message. It has no
Streamlit imports so pages can hand it a placeholder callback and tests can
drive it with a fake HTTP session.
"""
from __future__ import annotations

import codecs
import json
import logging
import time
from dataclasses import dataclass, field, replace
from typing import Any, Callable, Dict, Iterable, Iterator, List, Optional

import requests

logger = logging.getLogger("chat_stream")

STREAMING_ID = "streaming"
DATA_PREFIX = "data: "

INTERRUPTED_TEXT = "Sorry, the response was interrupted. Please try again."
EMPTY_TEXT = "Response received but was empty."
INTERRUPTED_NOTICE = "Stream interrupted. Please try again."


class StreamInterrupted(Exception):
    """The stream failed or the backend reported an error envelope."""


@dataclass
class TokenUsage:
    promptTokens: int = 0
    completionTokens: int = 0
    totalTokens: int = 0

    @classmethod
    def from_wire(cls, raw: Dict[str, Any]) -> "TokenUsage":
        return cls(
            promptTokens=int(raw.get("promptTokens") or 0),
            completionTokens=int(raw.get("completionTokens") or 0),
            totalTokens=int(raw.get("totalTokens") or 0),
        )

    def __add__(self, other: "TokenUsage") -> "TokenUsage":
        return TokenUsage(
            self.promptTokens + other.promptTokens,
            self.completionTokens + other.completionTokens,
            self.totalTokens + other.totalTokens,
        )


@dataclass
class Message:
    id: str
    role: str
    content: str
    session_id: Optional[str] = None
    created_at: float = field(default_factory=time.time)
    status: Optional[str] = None
    usage: Optional[TokenUsage] = None


def _local_id() -> str:
    return str(time.time_ns())


def iter_data_lines(chunks: Iterable[bytes]) -> Iterator[str]:
    """
    Yield the payload of every complete ``data:`` line.
    Lines split across network reads are carried over to the next chunk.
    """
    decoder = codecs.getincrementaldecoder("utf-8")(errors="replace")
    pending = ""
    for chunk in chunks:
        pending += decoder.decode(chunk)
        *lines, pending = pending.split("\n")
        for line in lines:
            line = line.strip()
            if line.startswith(DATA_PREFIX):
                yield line[len(DATA_PREFIX):]
    pending += decoder.decode(b"", final=True)
    line = pending.strip()
    if line.startswith(DATA_PREFIX):
        yield line[len(DATA_PREFIX):]


class ChatStream:
    """Local message state plus the send/stream/finalize cycle for one session."""

    def __init__(
        self,
        session_id: str,
        user_id: Optional[str] = None,
        *,
        base_url: str = "http://127.0.0.1:8000",
        http: Optional[requests.Session] = None,
        notify: Optional[Callable[[str], None]] = None,
        timeout: float = 120.0,
    ):
        self.session_id = session_id
        self.user_id = user_id
        self.base_url = base_url.rstrip("/")
        self.messages: List[Message] = []
        self.total_usage = TokenUsage()
        self.loading = False
        self._http = http or requests.Session()
        self._notify = notify or (lambda text: logger.warning(text))
        self._timeout = timeout

    # ---------------- local state ----------------
    def _append(self, message: Message) -> None:
        self.messages.append(message)

    def _set_placeholder_content(self, content: str) -> Optional[Message]:
        for i, m in enumerate(self.messages):
            if m.id == STREAMING_ID:
                self.messages[i] = replace(m, content=content)
                return self.messages[i]
        return None

    def _finalize(self, message: Message) -> Message:
        """Drop the placeholder and append the settled message."""
        self.messages = [m for m in self.messages if m.id != STREAMING_ID]
        self.messages.append(message)
        return message

    @property
    def placeholder(self) -> Optional[Message]:
        return next((m for m in self.messages if m.id == STREAMING_ID), None)

    # ---------------- send ----------------
    def send_message(
        self,
        content: str,
        on_update: Optional[Callable[[Message], None]] = None,
    ) -> Optional[TokenUsage]:
        """
        Send ``content`` and stream the reply into ``self.messages``.

        ``on_update`` is called with the in-flight assistant message after every
        content delta. Returns the reply's usage, or None when nothing was sent
        or the stream failed.
        """
        if not content.strip() or not self.session_id:
            return None

        self._append(Message(
            id=_local_id(), role="user", content=content,
            session_id=self.session_id, status="success",
        ))
        self._append(Message(
            id=STREAMING_ID, role="assistant", content="",
            session_id=self.session_id, status="success",
        ))
        self.loading = True

        try:
            full_content, usage = self._read_stream(content, on_update)
        except Exception as e:
            logger.error(f"Streaming error caught: {e}")
            self._finalize(Message(
                id=_local_id(), role="assistant", content=INTERRUPTED_TEXT,
                session_id=self.session_id, status="error",
            ))
            self._notify(INTERRUPTED_NOTICE)
            return None
        finally:
            self.loading = False

        self._finalize(Message(
            id=_local_id(),
            role="assistant",
            content=full_content or EMPTY_TEXT,
            session_id=self.session_id,
            status="success" if full_content else "error",
            usage=usage,
        ))
        logger.info(f"Final message created with content length: {len(full_content)}, usage: {usage}")

        if usage is not None:
            self.total_usage = self.total_usage + usage
        return usage

    def _read_stream(self, content: str, on_update: Optional[Callable[[Message], None]]):
        body = {"message": content, "sessionId": self.session_id, "userId": self.user_id}
        response = self._http.post(
            f"{self.base_url}/chat", json=body, stream=True, timeout=self._timeout
        )
        try:
            if not response.ok:
                raise StreamInterrupted(f"Failed to get response ({response.status_code})")

            full_content = ""
            usage: Optional[TokenUsage] = None
            for data in iter_data_lines(response.iter_content(chunk_size=None)):
                try:
                    parsed = json.loads(data)
                except ValueError:
                    logger.error(f"Failed to parse stream data: {data!r}")
                    continue
                if not isinstance(parsed, dict):
                    continue

                if parsed.get("error"):
                    raise StreamInterrupted(str(parsed["error"]))

                if parsed.get("content"):
                    full_content += parsed["content"]
                    updated = self._set_placeholder_content(full_content)
                    if on_update and updated is not None:
                        on_update(updated)

                if isinstance(parsed.get("usage"), dict):
                    usage = TokenUsage.from_wire(parsed["usage"])
            return full_content, usage
        finally:
            response.close()

    # ---------------- history ----------------
    def load_messages(self, session_id: Optional[str] = None) -> List[Message]:
        """Replace local state with the persisted history of a session."""
        if session_id:
            self.session_id = session_id
        try:
            response = self._http.get(
                f"{self.base_url}/messages",
                params={"sessionId": self.session_id},
                timeout=self._timeout,
            )
        except requests.RequestException as e:
            logger.error(f"Error loading messages: {e}")
            return self.messages

        if response.ok:
            self.messages = [
                Message(
                    id=str(m["id"]), role=m["role"], content=m["content"],
                    session_id=self.session_id, status="success",
                )
                for m in (response.json() or {}).get("messages", [])
            ]
            self.total_usage = TokenUsage()
        else:
            logger.error(f"Error loading messages: HTTP {response.status_code}")
        return self.messages

    def clear(self) -> bool:
        """Delete the session's messages on the server, then locally."""
        try:
            response = self._http.post(
                f"{self.base_url}/clear", json={"sessionId": self.session_id}, timeout=self._timeout
            )
        except requests.RequestException as e:
            logger.error(f"Error clearing chat: {e}")
            return False
        if not response.ok:
            logger.error(f"Error clearing chat: HTTP {response.status_code}")
            return False
        self.messages = []
        self.total_usage = TokenUsage()
        return True
