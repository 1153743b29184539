from __future__ import annotations
import streamlit as st

from frontend.services.chat_stream import Message, TokenUsage


# ---------- Chat ----------
def chat_message(message: Message):
    """Render a single chat message with its avatar."""
    avatar = "👤" if message.role == "user" else "🤖"
    with st.chat_message(message.role, avatar=avatar):
        if message.status == "error":
            st.error(message.content)
        else:
            st.markdown(message.content.strip() or "(no content)")
        if message.usage:
            st.caption(f"{message.usage.totalTokens} tokens")


def usage_panel(usage: TokenUsage):
    st.sidebar.markdown("#### Token usage")
    c1, c2, c3 = st.sidebar.columns(3)
    c1.metric("Prompt", usage.promptTokens)
    c2.metric("Completion", usage.completionTokens)
    c3.metric("Total", usage.totalTokens)


# ---------- Confirmation pattern ----------
def confirm_row(action_label: str, key: str) -> bool:
    """
    Simple 2-step confirmation: press action -> shows confirm buttons -> press again.
    Returns True when confirmed.
    """
    step1 = st.button(action_label, key=f"{key}_btn", use_container_width=True)
    if step1:
        st.session_state[f"{key}_confirm"] = True

    if st.session_state.get(f"{key}_confirm"):
        st.warning("Confirm?")
        col1, col2 = st.columns(2)
        with col1:
            yes = st.button("Yes", key=f"{key}_yes")
        with col2:
            no = st.button("No", key=f"{key}_no")

        if yes:
            st.session_state.pop(f"{key}_confirm", None)
            return True
        if no:
            st.session_state.pop(f"{key}_confirm", None)
    return False
