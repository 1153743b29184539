import streamlit as st

from frontend.services.api import post
from frontend.utils.session_manager import SessionManager


# -----------------------------
# Helpers (normalization)
# -----------------------------
def _norm_name(name: str) -> str:
    return (name or "").strip()

def _norm_email(email: str) -> str:
    return (email or "").strip().lower()

def _norm_password(password: str) -> str:
    return (password or "").strip()


# -----------------------------
# SIGNUP
# -----------------------------
def signup(name: str, email: str, password: str) -> bool:
    payload = {
        "name": _norm_name(name),
        "email": _norm_email(email),
        "password": _norm_password(password),
    }
    r = post("/users/signup", json=payload)
    if not r.ok:
        detail = (r.json() or {}).get("detail") if r.status_code else None
        st.error(f"Signup failed: {detail or r.text}")
    return r.ok


# -----------------------------
# LOGIN
# -----------------------------
def login(email: str, password: str) -> dict | None:
    """
    Calls /users/login with {email, password}.
    On success, stores the JWT and user info in st.session_state.
    """
    r = post("/users/login", json={"email": _norm_email(email), "password": _norm_password(password)})
    if not r.ok:
        return None
    data = r.json() or {}
    token = data.get("access_token")
    if not token:
        return None
    SessionManager.set_token(token)
    SessionManager.set_user(data.get("user_id"), data.get("username"))
    return data


# -----------------------------
# LOGOUT
# -----------------------------
def logout():
    """Tokens are stateless; signing out only clears local state."""
    SessionManager.clear_all()
