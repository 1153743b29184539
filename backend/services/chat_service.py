import math
import logging
from typing import Dict, Iterable, Iterator, List, Optional

from backend.database.repositories import ChatSessionRepository, MessageRepository
from backend.models.chat_model import StreamEnvelope, TokenUsage
from backend.services.errors import ParseError, StreamInterrupted
from backend.services.llm_services import LLMClient
from backend.services.profile_detector import is_profile_query
from backend.utils.sse import (
    DeltaChunk,
    DoneSentinel,
    Unrecognized,
    UsageChunk,
    data_of,
    decode_provider_line,
    iter_lines,
)

logger = logging.getLogger("chat_service")
logging.basicConfig(level=logging.INFO)

CHAT_CONTEXT_LIMIT = 20
PROFILE_HISTORY_LIMIT = 50
PROFILE_MIN_MESSAGES = 5

NOT_ENOUGH_HISTORY = (
    "I'd love to tell you about yourself, but we've only just started chatting! "
    "Have a few more conversations with me, and I'll be able to give you a better personality profile."
)
STREAM_INTERRUPTED = "Stream interrupted"


def estimate_usage(text: str) -> TokenUsage:
    """Rough count (4 characters per token) for streams that never report usage."""
    tokens = math.ceil(len(text) / 4)
    return TokenUsage(prompt_tokens=0, completion_tokens=tokens, total_tokens=tokens)


def format_history(history: List[Dict]) -> str:
    return "\n\n".join(
        f"{'User' if m['role'] == 'user' else 'Assistant'}: {m['content']}" for m in history
    )


class ChatRelay:
    """
    Turns one inbound chat message into a sequence of ``StreamEnvelope``.

    ``handle`` does every step that can fail before output starts (saving the
    user message, the profile completion, opening the upstream stream) eagerly,
    so the caller can still answer with an HTTP error. What it returns is a
    lazy, single-use iterator; failures while iterating end with one error
    envelope followed by ``StreamInterrupted``.
    """

    def __init__(
        self,
        llm: LLMClient,
        messages: MessageRepository,
        sessions: Optional[ChatSessionRepository] = None,
    ):
        self._llm = llm
        self._messages = messages
        self._sessions = sessions

    def handle(self, message: str, session_id: str, user_id: Optional[str] = None) -> Iterator[StreamEnvelope]:
        # Save first so history reads below already include this turn
        self._messages.append(session_id=session_id, role="user", content=message, user_id=user_id)

        if is_profile_query(message):
            logger.info(f"Profile query detected for session {session_id}")
            return self._profile_reply(message, session_id, user_id)
        return self._chat_reply(message, session_id, user_id)

    # ---------------- profile branch ----------------
    def _profile_reply(self, message: str, session_id: str, user_id: Optional[str]) -> Iterator[StreamEnvelope]:
        history = self._messages.history(session_id, limit=PROFILE_HISTORY_LIMIT)

        usage: Optional[TokenUsage] = None
        if len(history) < PROFILE_MIN_MESSAGES:
            text = NOT_ENOUGH_HISTORY
        else:
            result = self._llm.generate_profile(format_history(history))
            text, usage = result.text, result.usage

        self._persist_reply(text, message, session_id, user_id)

        envelopes = [StreamEnvelope.text(text)]
        if usage is not None:
            envelopes.append(StreamEnvelope.accounting(usage))
        return iter(envelopes)

    # ---------------- chat branch ----------------
    def _chat_reply(self, message: str, session_id: str, user_id: Optional[str]) -> Iterator[StreamEnvelope]:
        history = self._messages.history(session_id, limit=CHAT_CONTEXT_LIMIT)
        context = [{"role": m["role"], "content": m["content"]} for m in history]
        upstream = self._llm.stream(context, persona="chat")
        return self._relay(upstream, message, session_id, user_id)

    def _relay(
        self,
        upstream: Iterable[bytes],
        message: str,
        session_id: str,
        user_id: Optional[str],
    ) -> Iterator[StreamEnvelope]:
        full_response = ""
        usage: Optional[TokenUsage] = None

        try:
            for line in iter_lines(upstream):
                data = data_of(line)
                if data is None:
                    continue
                try:
                    events = decode_provider_line(data)
                except ParseError as e:
                    logger.error(f"{e}")
                    continue

                for event in events:
                    if isinstance(event, DeltaChunk):
                        full_response += event.content
                        yield StreamEnvelope.text(event.content)
                    elif isinstance(event, UsageChunk):
                        usage = event.usage
                    elif isinstance(event, Unrecognized):
                        logger.debug(f"Skipping unrecognized SSE payload: {event.payload!r}")
                    elif isinstance(event, DoneSentinel):
                        continue

            logger.info(f"Stream complete. Full response length: {len(full_response)}")
            self._persist_reply(full_response, message, session_id, user_id)
        except Exception as e:
            # raw error stays in the log; the client only sees the fixed notice
            logger.error(f"Streaming error: {e}")
            yield StreamEnvelope.failure(STREAM_INTERRUPTED)
            raise StreamInterrupted(str(e)) from e

        if usage is None:
            usage = estimate_usage(full_response)
        logger.info(f"Sending usage data: {usage.to_wire()}")
        yield StreamEnvelope.accounting(usage)

    # ---------------- persistence ----------------
    def _persist_reply(self, text: str, message: str, session_id: str, user_id: Optional[str]) -> None:
        self._messages.append(session_id=session_id, role="assistant", content=text, user_id=user_id)
        if self._sessions is None:
            return
        try:
            self._sessions.touch(session_id, first_message=message)
        except Exception as e:
            logger.warning(f"Failed to update chat session {session_id}: {e}")
