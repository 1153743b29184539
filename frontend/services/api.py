import os
import streamlit as st
import requests
from typing import Optional, Dict, Any

from frontend.utils.session_manager import SessionManager


def _backend_url() -> str:
    try:
        url = st.secrets.get("BACKEND_URL")
    except Exception:
        # no secrets.toml present
        url = None
    return (url or os.getenv("BACKEND_URL") or "http://127.0.0.1:8000").rstrip("/")


BASE_URL = _backend_url()


# -----------------------------
# APIResponse wrapper
# -----------------------------
class APIResponse:
    def __init__(self, response: Optional[requests.Response] = None, error: Optional[Exception] = None):
        self._resp = response
        self.error = error

    @property
    def ok(self) -> bool:
        return self._resp is not None and getattr(self._resp, "ok", False)

    @property
    def status_code(self) -> Optional[int]:
        return self._resp.status_code if self._resp is not None else None

    def json(self):
        if self._resp is None:
            return None
        try:
            return self._resp.json()
        except ValueError:
            return None

    @property
    def text(self) -> str:
        if self._resp is not None:
            return self._resp.text
        return str(self.error) if self.error else ""


# -----------------------------
# Helpers
# -----------------------------
def _auth_headers() -> Dict[str, str]:
    token = SessionManager.get_token()
    if token:
        return {"Authorization": f"Bearer {token}", "Accept": "application/json"}
    return {"Accept": "application/json"}


def _absolute(path: str) -> str:
    if not path.startswith("/"):
        path = "/" + path
    return f"{BASE_URL}{path}"


def _send(method: str, path: str, **kwargs) -> APIResponse:
    try:
        response = requests.request(method, _absolute(path), headers=_auth_headers(), timeout=30, **kwargs)
        return APIResponse(response)
    except requests.RequestException as e:
        st.error(f"{method} failed: {e}")
        return APIResponse(error=e)


# -----------------------------
# HTTP Methods
# -----------------------------
def post(path: str, json: Optional[Dict[str, Any]] = None) -> APIResponse:
    return _send("POST", path, json=json)


def get(path: str, params: Optional[Dict[str, Any]] = None) -> APIResponse:
    return _send("GET", path, params=params)


def put(path: str, json: Optional[Dict[str, Any]] = None) -> APIResponse:
    return _send("PUT", path, json=json)


def patch(path: str, json: Optional[Dict[str, Any]] = None) -> APIResponse:
    return _send("PATCH", path, json=json)


def delete(path: str) -> APIResponse:
    return _send("DELETE", path)
