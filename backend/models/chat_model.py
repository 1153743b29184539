# models/chat_model.py
import json
from datetime import datetime
from typing import Any, Dict, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field

Role = Literal["user", "assistant", "system"]


class TokenUsage(BaseModel):
    """Token accounting in the camelCase shape the client expects."""
    model_config = ConfigDict(populate_by_name=True)

    prompt_tokens: int = Field(default=0, ge=0, alias="promptTokens")
    completion_tokens: int = Field(default=0, ge=0, alias="completionTokens")
    total_tokens: int = Field(default=0, ge=0, alias="totalTokens")

    def to_wire(self) -> Dict[str, int]:
        return self.model_dump(by_alias=True)


class StreamEnvelope(BaseModel):
    """
    One unit of the app's own SSE protocol.
    Exactly one of ``content``, ``usage`` or ``error`` is set.
    """
    content: Optional[str] = None
    usage: Optional[TokenUsage] = None
    error: Optional[str] = None

    @classmethod
    def text(cls, content: str) -> "StreamEnvelope":
        return cls(content=content)

    @classmethod
    def accounting(cls, usage: TokenUsage) -> "StreamEnvelope":
        return cls(usage=usage)

    @classmethod
    def failure(cls, message: str) -> "StreamEnvelope":
        return cls(error=message)

    def payload(self) -> Dict[str, Any]:
        if self.content is not None:
            return {"content": self.content}
        if self.usage is not None:
            return {"usage": self.usage.to_wire()}
        return {"error": self.error}

    def to_sse(self) -> str:
        return f"data: {json.dumps(self.payload())}\n\n"


# ---------------- Stored messages ----------------
class ChatMessageOut(BaseModel):
    id: str
    role: Role
    content: str
    created_at: Optional[datetime] = None


# ---------------- Request bodies ----------------
class ChatBody(BaseModel):
    message: Optional[str] = None
    sessionId: Optional[str] = None
    userId: Optional[str] = None


class ClearBody(BaseModel):
    sessionId: Optional[str] = None


# ---------------- Chat sessions ----------------
class ChatSessionOut(BaseModel):
    id: str
    user_id: str
    title: str
    created_at: datetime
    updated_at: datetime


class SessionCreate(BaseModel):
    title: Optional[str] = None


class SessionUpdate(BaseModel):
    title: str = Field(min_length=1, max_length=200)
