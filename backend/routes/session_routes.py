from fastapi import APIRouter, Depends, HTTPException
import logging

from backend.database.repositories import ChatSessionRepository
from backend.dependencies import get_session_repo
from backend.models.chat_model import ChatSessionOut, SessionCreate, SessionUpdate
from backend.utils.jwt_handler import require_user

# Logger setup
logger = logging.getLogger("session_routes")
logging.basicConfig(level=logging.INFO)

router = APIRouter(prefix="/sessions", tags=["Sessions"])


def _owned(sessions: ChatSessionRepository, session_id: str, user: dict) -> dict:
    sess = sessions.get(session_id)
    if not sess or sess["user_id"] != user["user_id"]:
        raise HTTPException(404, "Session not found")
    return sess


#---- chat sessions of the user, most recently active first ---#
@router.get("")
def list_my_sessions(user=Depends(require_user), sessions: ChatSessionRepository = Depends(get_session_repo)):
    items = sessions.list_for_user(user["user_id"])
    return {"sessions": [ChatSessionOut(**s) for s in items]}


@router.post("", status_code=201)
def create_session(
    body: SessionCreate,
    user=Depends(require_user),
    sessions: ChatSessionRepository = Depends(get_session_repo),
):
    sess = sessions.create(user["user_id"], body.title)
    logger.info(f"Chat session {sess['id']} created for user {user['user_id']}")
    return ChatSessionOut(**sess)


@router.patch("/{session_id}")
def rename_session(
    session_id: str,
    body: SessionUpdate,
    user=Depends(require_user),
    sessions: ChatSessionRepository = Depends(get_session_repo),
):
    _owned(sessions, session_id, user)
    sess = sessions.update(session_id, title=body.title.strip())
    if not sess:
        raise HTTPException(404, "Session not found")
    return ChatSessionOut(**sess)


#--- deleting a chat session also removes its messages ---#
@router.delete("/{session_id}")
def delete_session(
    session_id: str,
    user=Depends(require_user),
    sessions: ChatSessionRepository = Depends(get_session_repo),
):
    _owned(sessions, session_id, user)
    sessions.delete(session_id)
    logger.info(f"Chat session {session_id} deleted by user {user['user_id']}")
    return {"ok": True, "deleted": 1}
