import streamlit as st

from frontend.services import chat_service
from frontend.services.api import BASE_URL
from frontend.utils.helper import session_title, toast_err, toast_ok
from frontend.utils.session_manager import SessionManager
from frontend.utils.ui_components import chat_message, confirm_row, usage_panel

st.set_page_config(page_title="Chat", page_icon="💬", layout="wide")

# ---------------- Auth Guard ----------------
if not SessionManager.is_logged_in():
    st.error("⛔ Please sign in to use Chat.")
    st.stop()


def _open(session: dict):
    SessionManager.open_session(session, BASE_URL, notify=toast_err)


def _new_chat():
    session = chat_service.create_session()
    if session:
        _open(session)
    else:
        toast_err("Failed to create chat")


# ---------------- Initial session ----------------
sessions = chat_service.list_sessions()
if SessionManager.current_session() is None:
    if sessions:
        _open(sessions[0])
    else:
        # first visit: every user starts with one chat
        _new_chat()
        sessions = chat_service.list_sessions()

# the server renames a fresh chat after its first reply
current = SessionManager.sync_session(sessions)
stream = SessionManager.chat_stream()
if current is None or stream is None:
    st.stop()

# ---------------- Sidebar ----------------
with st.sidebar:
    st.title("💬 Chats")
    st.caption(f"Signed in as **{SessionManager.username()}**")

    if st.button("➕ New Chat", use_container_width=True):
        _new_chat()
        st.rerun()

    for sess in sessions:
        active = sess["id"] == current["id"]
        cols = st.columns([5, 1])
        with cols[0]:
            if st.button(f"{'✅ ' if active else ''}{sess['title']}", key=f"open-{sess['id']}",
                         use_container_width=True):
                _open(sess)
                st.rerun()
        with cols[1]:
            if st.button("🗑", key=f"del-{sess['id']}"):
                if chat_service.delete_session(sess["id"]):
                    toast_ok("Chat deleted")
                    if active:
                        SessionManager.close_session()
                    st.rerun()
                else:
                    toast_err("Failed to delete chat")

    st.divider()
    if confirm_row("🧹 Clear conversation", key="clear_chat"):
        if stream.clear():
            st.rerun()
        else:
            toast_err("Failed to clear conversation")

    usage_panel(stream.total_usage)

# ---------------- Main Chat Area ----------------
st.title(session_title(current))

for m in stream.messages:
    chat_message(m)

prompt = st.chat_input("Type your message…", disabled=stream.loading)

if prompt:
    with st.chat_message("user", avatar="👤"):
        st.markdown(prompt)

    with st.chat_message("assistant", avatar="🤖"):
        live = st.empty()
        live.markdown("…")
        stream.send_message(prompt, on_update=lambda msg: live.markdown(msg.content))

    st.rerun()
