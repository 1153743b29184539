import logging
from dataclasses import dataclass, field
from typing import Any, Dict, Iterator, List, Optional

import requests

from backend.config import Settings
from backend.models.chat_model import TokenUsage
from backend.services.errors import ConfigError, UpstreamError

# Set up logger
logger = logging.getLogger("llm_service")
logging.basicConfig(level=logging.INFO)

CHAT_SYSTEM_PROMPT = (
    "You are a helpful, friendly AI assistant. You engage in natural conversations with users "
    "and remember context from your discussions. Be conversational, empathetic, and helpful."
)

PROFILE_SYSTEM_PROMPT = """You are an expert at analyzing conversation patterns to create personality profiles. Based on the conversation history provided, generate a comprehensive but sensitive personality profile of the user.

Format your response EXACTLY as follows:

👤 Your Profile (based on our conversations)

• Communication Style: [Describe how they communicate]
• Technical Inclination: [Their technical comfort level and interests]
• Decision-Making Pattern: [How they approach decisions]
• Interests Detected: [Topics they're curious about]
• Personality Traits: [Key characteristics observed]
• Confidence Level: [Low/Medium/High - based on available data]

Note: This profile is inferred only from our chats so far.

Important: Avoid mentioning religion, health conditions, politics, or other sensitive attributes. Keep the tone positive and constructive."""

PERSONAS = {
    "chat": CHAT_SYSTEM_PROMPT,
    "profile": PROFILE_SYSTEM_PROMPT,
}

MISSING_KEY_MESSAGE = (
    "OpenRouter API key is not configured. "
    "Please add OPENROUTER_API_KEY to your environment variables."
)


@dataclass
class Completion:
    text: str
    usage: TokenUsage = field(default_factory=TokenUsage)


def normalize_usage(raw: Optional[Dict[str, Any]]) -> TokenUsage:
    """Map the provider's snake_case counters onto ``TokenUsage``; missing counts are 0."""
    raw = raw or {}
    return TokenUsage(
        prompt_tokens=int(raw.get("prompt_tokens") or 0),
        completion_tokens=int(raw.get("completion_tokens") or 0),
        total_tokens=int(raw.get("total_tokens") or 0),
    )


def _provider_error_message(response: requests.Response) -> str:
    try:
        body = response.json()
    except ValueError:
        return response.text or "OpenRouter API request failed"
    if isinstance(body, dict):
        error = body.get("error")
        if isinstance(error, dict) and error.get("message"):
            return str(error["message"])
        if body.get("message"):
            return str(body["message"])
    return "OpenRouter API request failed"


class LLMClient:
    """
    Chat-completions client for an OpenAI-compatible provider (OpenRouter by default).

    ``complete`` returns the whole answer at once; ``stream`` hands back the raw
    SSE body for the relay to transform. Both prepend the persona's system prompt.
    """

    def __init__(
        self,
        api_key: Optional[str],
        base_url: str,
        model: str,
        *,
        site_url: str = "http://localhost:8501",
        app_title: str = "AI Assistant Chatbot",
        timeout: float = 60.0,
        session: Optional[requests.Session] = None,
    ):
        self.api_key = api_key
        self.base_url = base_url
        self.model = model
        self.site_url = site_url
        self.app_title = app_title
        self.timeout = timeout
        self._http = session or requests.Session()

    @classmethod
    def from_settings(cls, settings: Settings, session: Optional[requests.Session] = None) -> "LLMClient":
        return cls(
            settings.openrouter_api_key,
            settings.openrouter_api_url,
            settings.openrouter_model,
            site_url=settings.site_url,
            app_title=settings.app_title,
            timeout=settings.llm_timeout,
            session=session,
        )

    # ---------------- request helpers ----------------
    def _headers(self) -> Dict[str, str]:
        return {
            "Authorization": f"Bearer {self.api_key}",
            "Content-Type": "application/json",
            "HTTP-Referer": self.site_url,
            "X-Title": self.app_title,
        }

    @staticmethod
    def _format_messages(messages: List[Dict[str, str]], persona: str) -> List[Dict[str, str]]:
        if persona not in PERSONAS:
            raise ValueError(f"Unknown persona: {persona}")
        formatted = [{"role": "system", "content": PERSONAS[persona]}]
        formatted.extend(
            {"role": "user" if m["role"] == "user" else "assistant", "content": m["content"]}
            for m in messages
        )
        return formatted

    def _post(self, messages: List[Dict[str, str]], persona: str, stream: bool) -> requests.Response:
        if not self.api_key:
            logger.error("OPENROUTER_API_KEY is not set.")
            raise ConfigError(MISSING_KEY_MESSAGE)

        body: Dict[str, Any] = {
            "model": self.model,
            "messages": self._format_messages(messages, persona),
        }
        if stream:
            body["stream"] = True

        try:
            response = self._http.post(
                self.base_url,
                json=body,
                headers=self._headers(),
                stream=stream,
                timeout=self.timeout,
            )
        except requests.RequestException as e:
            logger.error(f"Error calling OpenRouter API: {e}")
            raise UpstreamError(f"Failed to reach the LLM provider: {e}") from e

        if not response.ok:
            message = _provider_error_message(response)
            logger.error(f"OpenRouter error response ({response.status_code}): {message}")
            response.close()
            raise UpstreamError(message, status_code=response.status_code)
        return response

    # ---------------- public API ----------------
    def complete(self, messages: List[Dict[str, str]], persona: str = "chat") -> Completion:
        """
        Non-streaming chat completion.

        Args:
            messages: Prior turns as ``{"role", "content"}`` dicts.
            persona: ``"chat"`` or ``"profile"``; selects the system prompt.

        Returns:
            Completion: the answer text (empty if the provider omitted it) and normalized usage.
        """
        response = self._post(messages, persona, stream=False)
        try:
            data = response.json()
        except ValueError as e:
            raise UpstreamError("OpenRouter returned a non-JSON response") from e

        choices = data.get("choices") or [{}]
        text = ((choices[0] or {}).get("message") or {}).get("content") or ""
        usage = normalize_usage(data.get("usage"))
        logger.info(f"LLM response: {text[:100]}...")  # Log the first 100 characters of the response
        return Completion(text=text, usage=usage)

    def stream(self, messages: List[Dict[str, str]], persona: str = "chat") -> Iterator[bytes]:
        """Start a streaming completion and return the raw SSE body as byte chunks."""
        response = self._post(messages, persona, stream=True)

        def body() -> Iterator[bytes]:
            try:
                for chunk in response.iter_content(chunk_size=None):
                    if chunk:
                        yield chunk
            finally:
                response.close()

        return body()

    def generate_profile(self, conversation_text: str) -> Completion:
        prompt = (
            f"Here is the conversation history:\n\n{conversation_text}\n\n"
            "Please generate a personality profile."
        )
        return self.complete([{"role": "user", "content": prompt}], persona="profile")
