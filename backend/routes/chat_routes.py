import logging
from typing import Iterator, Optional

from fastapi import APIRouter, Depends, Query
from fastapi.responses import JSONResponse, StreamingResponse

from backend.database.repositories import MessageRepository
from backend.dependencies import get_chat_relay, get_message_repo
from backend.models.chat_model import ChatBody, ChatMessageOut, ClearBody, StreamEnvelope
from backend.services.chat_service import ChatRelay
from backend.services.errors import ChatError

logger = logging.getLogger("chat_routes")
logging.basicConfig(level=logging.INFO)

router = APIRouter(tags=["chat"])

CHAT_FAILED = "Failed to process chat message"

SSE_HEADERS = {
    "Cache-Control": "no-cache",
    "Connection": "keep-alive",
}


def _frames(envelopes: Iterator[StreamEnvelope]) -> Iterator[str]:
    for envelope in envelopes:
        yield envelope.to_sse()


def _error(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"error": message})


# ---------------- Chat (SSE) ----------------
@router.post("/chat")
def chat(body: ChatBody, relay: ChatRelay = Depends(get_chat_relay)):
    """
    Save the user's message and stream the assistant's reply as SSE envelopes.
    Errors before the first byte come back as JSON; later ones arrive in-band.
    """
    session_id = (body.sessionId or "").strip()
    if not (body.message or "").strip() or not session_id:
        return _error(400, "Message and sessionId are required")

    try:
        envelopes = relay.handle(body.message, session_id, body.userId)
    except ChatError as e:
        logger.error(f"Error in chat API: {e}")
        return _error(500, CHAT_FAILED)
    except Exception as e:
        logger.exception(f"Error in chat API: {e}")
        return _error(500, CHAT_FAILED)

    return StreamingResponse(_frames(envelopes), media_type="text/event-stream", headers=SSE_HEADERS)


# ---------------- Clear ----------------
@router.post("/clear")
def clear(body: ClearBody, messages: MessageRepository = Depends(get_message_repo)):
    session_id = (body.sessionId or "").strip()
    if not session_id:
        return _error(400, "SessionId is required")
    try:
        removed = messages.clear(session_id)
    except Exception as e:
        logger.error(f"Error clearing conversation: {e}")
        return _error(500, "Failed to clear conversation")
    logger.info(f"Cleared {removed} messages from session {session_id}")
    return {"success": True}


# ---------------- History ----------------
@router.get("/messages")
def get_messages(
    session_id: Optional[str] = Query(None, alias="sessionId"),
    messages: MessageRepository = Depends(get_message_repo),
):
    if not session_id:
        return _error(400, "SessionId is required")
    try:
        items = messages.history(session_id)
    except Exception as e:
        logger.error(f"Failed to fetch messages for {session_id}: {e}")
        return _error(500, "Failed to fetch messages")
    return {"messages": [ChatMessageOut(**m) for m in items]}
