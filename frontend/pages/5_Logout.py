import streamlit as st

from frontend.services.auth_service import logout

st.set_page_config(page_title="Logout", page_icon="🚪")
st.title("🚪 Logout")

st.info("You’re about to sign out.")

if st.button("✅ Sign out now", type="primary"):
    logout()
    st.switch_page("Home.py")

if st.button("❌ Cancel"):
    st.info("Logout cancelled.")
