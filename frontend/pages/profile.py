import streamlit as st

from frontend.services import chat_service
from frontend.utils.helper import toast_err, toast_ok
from frontend.utils.session_manager import SessionManager

st.set_page_config(page_title="Profile", page_icon="👤")
st.title("👤 Profile Settings")

if not SessionManager.is_logged_in():
    st.warning("⚠️ Please login first to edit your profile.")
    st.stop()

profile = chat_service.get_profile() or {}

with st.form("profile_form"):
    full_name = st.text_input("Full name", value=profile.get("full_name") or "")
    saved = st.form_submit_button("Save", type="primary")

if saved:
    if chat_service.update_profile(full_name.strip()):
        toast_ok("Profile updated successfully")
    else:
        toast_err("Failed to update profile")
