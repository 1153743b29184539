from __future__ import annotations
import streamlit as st
from typing import List, Optional

from frontend.services.chat_stream import ChatStream
from frontend.utils.helper import find_session

# Consistent keys across project
_TOKEN_KEY = "token"
_USER_KEY = "username"
_USER_ID_KEY = "user_id"
_SESSION_KEY = "current_session"
_STREAM_KEY = "chat_stream"


class SessionManager:
    # -----------------------------
    # Auth
    # -----------------------------
    @staticmethod
    def is_logged_in() -> bool:
        return bool(st.session_state.get(_TOKEN_KEY))

    @staticmethod
    def get_token() -> Optional[str]:
        return st.session_state.get(_TOKEN_KEY)

    @staticmethod
    def set_token(token: Optional[str]):
        if token:
            st.session_state[_TOKEN_KEY] = token
        else:
            st.session_state.pop(_TOKEN_KEY, None)

    @staticmethod
    def set_user(user_id: Optional[str], username: Optional[str]):
        st.session_state[_USER_ID_KEY] = user_id
        st.session_state[_USER_KEY] = username

    @staticmethod
    def user_id() -> Optional[str]:
        return st.session_state.get(_USER_ID_KEY)

    @staticmethod
    def username() -> str:
        return st.session_state.get(_USER_KEY) or "(anonymous)"

    # -----------------------------
    # Chat session + stream state
    # -----------------------------
    @staticmethod
    def current_session() -> Optional[dict]:
        return st.session_state.get(_SESSION_KEY)

    @staticmethod
    def chat_stream() -> Optional[ChatStream]:
        return st.session_state.get(_STREAM_KEY)

    @staticmethod
    def open_session(session: dict, base_url: str, notify) -> ChatStream:
        """Make ``session`` current and load its history into a fresh ChatStream."""
        stream = ChatStream(
            session["id"],
            SessionManager.user_id(),
            base_url=base_url,
            notify=notify,
        )
        stream.load_messages()
        st.session_state[_SESSION_KEY] = session
        st.session_state[_STREAM_KEY] = stream
        return stream

    @staticmethod
    def sync_session(sessions: List[dict]) -> Optional[dict]:
        """Swap the cached current session for its fresh copy in ``sessions``."""
        current = st.session_state.get(_SESSION_KEY)
        if current is None:
            return None
        fresh = find_session(sessions, current.get("id"))
        if fresh is not None:
            st.session_state[_SESSION_KEY] = fresh
        return st.session_state[_SESSION_KEY]

    @staticmethod
    def close_session():
        for key in (_SESSION_KEY, _STREAM_KEY):
            st.session_state.pop(key, None)

    # -----------------------------
    # Global clear
    # -----------------------------
    @staticmethod
    def clear_all():
        """Logout-like cleanup (auth + chat)."""
        for key in (_TOKEN_KEY, _USER_KEY, _USER_ID_KEY, _SESSION_KEY, _STREAM_KEY):
            st.session_state.pop(key, None)
