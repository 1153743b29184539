"""FastAPI providers for the store repositories and the LLM client."""
from fastapi import Depends
from pymongo.database import Database

from backend.config import Settings, get_settings
from backend.database.mongodb import get_db
from backend.database.repositories import (
    ChatSessionRepository,
    MessageRepository,
    MongoChatSessionRepository,
    MongoMessageRepository,
    MongoProfileRepository,
    MongoUserRepository,
    ProfileRepository,
    UserRepository,
)
from backend.services.chat_service import ChatRelay
from backend.services.llm_services import LLMClient


def get_message_repo(db: Database = Depends(get_db)) -> MessageRepository:
    return MongoMessageRepository(db["conversations"])


def get_session_repo(
    db: Database = Depends(get_db),
    messages: MessageRepository = Depends(get_message_repo),
) -> ChatSessionRepository:
    return MongoChatSessionRepository(db["chat_sessions"], messages)


def get_profile_repo(db: Database = Depends(get_db)) -> ProfileRepository:
    return MongoProfileRepository(db["user_profiles"])


def get_user_repo(db: Database = Depends(get_db)) -> UserRepository:
    return MongoUserRepository(db["users"])


def get_llm_client(settings: Settings = Depends(get_settings)) -> LLMClient:
    return LLMClient.from_settings(settings)


def get_chat_relay(
    llm: LLMClient = Depends(get_llm_client),
    messages: MessageRepository = Depends(get_message_repo),
    sessions: ChatSessionRepository = Depends(get_session_repo),
) -> ChatRelay:
    return ChatRelay(llm, messages, sessions)
