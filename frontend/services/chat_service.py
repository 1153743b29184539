from typing import List, Optional

from frontend.services.api import delete, get, patch, post, put


# ---------------- Chat sessions ----------------
def list_sessions() -> List[dict]:
    r = get("/sessions")
    return (r.json() or {}).get("sessions", []) if r.ok else []


def create_session(title: str = "New Chat") -> Optional[dict]:
    r = post("/sessions", json={"title": title})
    return r.json() if r.ok else None


def rename_session(session_id: str, title: str) -> Optional[dict]:
    r = patch(f"/sessions/{session_id}", json={"title": title})
    return r.json() if r.ok else None


def delete_session(session_id: str) -> bool:
    return delete(f"/sessions/{session_id}").ok


# ---------------- Profile ----------------
def get_profile() -> Optional[dict]:
    r = get("/users/profile")
    return r.json() if r.ok else None


def update_profile(full_name: str) -> bool:
    return put("/users/profile", json={"full_name": full_name}).ok
