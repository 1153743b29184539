from typing import Optional


class ChatError(Exception):
    """Base class for failures raised by the chat pipeline."""


class ConfigError(ChatError):
    """The upstream credential (or other required setting) is missing."""


class UpstreamError(ChatError):
    """The LLM provider answered with a non-success status or could not be reached."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.message = message
        self.status_code = status_code


class ParseError(ChatError):
    """A single SSE data line could not be decoded. Recovered locally."""


class StreamInterrupted(Exception):
    """Reading or transforming a stream failed after output had started.

    Raised after the response has started, so it never maps to an HTTP error.
    """
