# backend/database/repositories.py
"""
Narrow store interfaces used by the chat core, with their MongoDB versions.

Messages and chat sessions live in separate collections and are written
independently; nothing here coordinates the two.
"""
from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Protocol, runtime_checkable

from bson import ObjectId
from bson.errors import InvalidId
from pymongo import ASCENDING, DESCENDING, ReturnDocument
from pymongo.collection import Collection
from pymongo.database import Database

logger = logging.getLogger("repositories")
logging.basicConfig(level=logging.INFO)

DEFAULT_SESSION_TITLE = "New Chat"


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def _oid(value: str) -> Optional[ObjectId]:
    try:
        return ObjectId(value)
    except (InvalidId, TypeError):
        return None


def _public(doc: Dict[str, Any]) -> Dict[str, Any]:
    out = dict(doc)
    out["id"] = str(out.pop("_id"))
    return out


# ---------------- Interfaces ----------------
@runtime_checkable
class MessageRepository(Protocol):
    def append(self, *, session_id: str, role: str, content: str, user_id: Optional[str] = None) -> dict: ...

    def history(self, session_id: str, limit: Optional[int] = None) -> List[dict]: ...

    def clear(self, session_id: str) -> int: ...


@runtime_checkable
class ChatSessionRepository(Protocol):
    def create(self, user_id: str, title: Optional[str] = None) -> dict: ...

    def get(self, session_id: str) -> Optional[dict]: ...

    def list_for_user(self, user_id: str) -> List[dict]: ...

    def update(self, session_id: str, **fields: Any) -> Optional[dict]: ...

    def touch(self, session_id: str, first_message: Optional[str] = None) -> None: ...

    def delete(self, session_id: str) -> bool: ...


@runtime_checkable
class ProfileRepository(Protocol):
    def get(self, user_id: str) -> Optional[dict]: ...

    def upsert(self, user_id: str, **fields: Any) -> dict: ...


@runtime_checkable
class UserRepository(Protocol):
    def find_by_email(self, email: str) -> Optional[dict]: ...

    def insert(self, data: dict) -> str: ...


# ---------------- MongoDB ----------------
class MongoMessageRepository:
    """Rows of the ``conversations`` collection, one per message."""

    def __init__(self, collection: Collection):
        self._messages = collection

    def ensure_indexes(self) -> None:
        self._messages.create_index([("session_id", ASCENDING), ("created_at", ASCENDING)])
        self._messages.create_index([("user_id", ASCENDING), ("created_at", DESCENDING)])

    def append(self, *, session_id: str, role: str, content: str, user_id: Optional[str] = None) -> dict:
        doc = {
            "session_id": str(session_id),
            "role": role,
            "content": content,
            "user_id": str(user_id) if user_id else None,
            "created_at": utc_now(),
        }
        res = self._messages.insert_one(doc)
        doc["_id"] = res.inserted_id
        return _public(doc)

    def history(self, session_id: str, limit: Optional[int] = None) -> List[dict]:
        """Chronological messages of a session; with ``limit``, the most recent ones."""
        if limit is None:
            cur = self._messages.find({"session_id": str(session_id)}).sort(
                [("created_at", ASCENDING), ("_id", ASCENDING)]
            )
            return [_public(m) for m in cur]

        cur = (
            self._messages.find({"session_id": str(session_id)})
            .sort([("created_at", DESCENDING), ("_id", DESCENDING)])
            .limit(limit)
        )
        items = [_public(m) for m in cur]
        items.reverse()
        return items

    def clear(self, session_id: str) -> int:
        res = self._messages.delete_many({"session_id": str(session_id)})
        return int(res.deleted_count)


class MongoChatSessionRepository:
    """Rows of the ``chat_sessions`` collection."""

    def __init__(self, collection: Collection, messages: MessageRepository):
        self._sessions = collection
        self._messages = messages

    def ensure_indexes(self) -> None:
        self._sessions.create_index([("user_id", ASCENDING), ("updated_at", DESCENDING)])

    def create(self, user_id: str, title: Optional[str] = None) -> dict:
        now = utc_now()
        doc = {
            "user_id": str(user_id),
            "title": (title or "").strip() or DEFAULT_SESSION_TITLE,
            "created_at": now,
            "updated_at": now,
        }
        res = self._sessions.insert_one(doc)
        doc["_id"] = res.inserted_id
        return _public(doc)

    def get(self, session_id: str) -> Optional[dict]:
        oid = _oid(session_id)
        if oid is None:
            return None
        doc = self._sessions.find_one({"_id": oid})
        return _public(doc) if doc else None

    def list_for_user(self, user_id: str) -> List[dict]:
        cur = self._sessions.find({"user_id": str(user_id)}).sort("updated_at", DESCENDING)
        return [_public(s) for s in cur]

    def update(self, session_id: str, **fields: Any) -> Optional[dict]:
        oid = _oid(session_id)
        if oid is None:
            return None
        fields["updated_at"] = utc_now()
        doc = self._sessions.find_one_and_update(
            {"_id": oid}, {"$set": fields}, return_document=ReturnDocument.AFTER
        )
        return _public(doc) if doc else None

    def touch(self, session_id: str, first_message: Optional[str] = None) -> None:
        """Bump ``updated_at``; name an untitled session after its first message."""
        oid = _oid(session_id)
        if oid is None:
            # sessions created outside this API may use non-ObjectId ids
            return
        self._sessions.update_one({"_id": oid}, {"$set": {"updated_at": utc_now()}})
        if first_message:
            self._sessions.update_one(
                {"_id": oid, "title": {"$in": [DEFAULT_SESSION_TITLE, None, ""]}},
                {"$set": {"title": first_message[:50]}},
            )

    def delete(self, session_id: str) -> bool:
        oid = _oid(session_id)
        if oid is None:
            return False
        res = self._sessions.delete_one({"_id": oid})
        if res.deleted_count:
            removed = self._messages.clear(session_id)
            logger.info(f"Deleted chat session {session_id} and {removed} messages")
        return bool(res.deleted_count)


class MongoProfileRepository:
    """Rows of ``user_profiles``; the document id is the user id."""

    def __init__(self, collection: Collection):
        self._profiles = collection

    def get(self, user_id: str) -> Optional[dict]:
        doc = self._profiles.find_one({"_id": str(user_id)})
        return _public(doc) if doc else None

    def upsert(self, user_id: str, **fields: Any) -> dict:
        now = utc_now()
        doc = self._profiles.find_one_and_update(
            {"_id": str(user_id)},
            {"$set": {**fields, "updated_at": now}, "$setOnInsert": {"created_at": now}},
            upsert=True,
            return_document=ReturnDocument.AFTER,
        )
        return _public(doc)


class MongoUserRepository:
    def __init__(self, collection: Collection):
        self._users = collection

    def ensure_indexes(self) -> None:
        self._users.create_index("email", unique=True)

    def find_by_email(self, email: str) -> Optional[dict]:
        return self._users.find_one({"email": email})

    def insert(self, data: dict) -> str:
        return str(self._users.insert_one(data).inserted_id)


def ensure_indexes(db: Database) -> None:
    messages = MongoMessageRepository(db["conversations"])
    messages.ensure_indexes()
    MongoChatSessionRepository(db["chat_sessions"], messages).ensure_indexes()
    MongoUserRepository(db["users"]).ensure_indexes()
