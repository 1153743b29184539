from __future__ import annotations
from typing import List, Optional

import streamlit as st

DEFAULT_TITLE = "New Chat"


# ---------- Toasts ----------
def toast_ok(msg: str):
    st.toast(msg, icon="✅")


def toast_err(msg: str):
    st.toast(msg, icon="❌")


# ---------- Sessions ----------
def find_session(sessions: List[dict], session_id: Optional[str]) -> Optional[dict]:
    """The entry of ``sessions`` with ``session_id``, as the server last listed it."""
    if not session_id:
        return None
    return next((s for s in sessions if s.get("id") == session_id), None)


def session_title(session: Optional[dict]) -> str:
    title = (session or {}).get("title") or ""
    return title.strip() or DEFAULT_TITLE
