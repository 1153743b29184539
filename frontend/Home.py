import streamlit as st

from frontend.services.auth_service import login, signup
from frontend.utils.helper import toast_ok, toast_err
from frontend.utils.session_manager import SessionManager

st.set_page_config(page_title="Persona Chat", page_icon="🤖", layout="wide")

# Hide sidebar when user is not logged in
if not SessionManager.is_logged_in():
    st.markdown("""
        <style>
        [data-testid="collapsedControl"] {
            display: none
        }
        </style>
        """, unsafe_allow_html=True)

st.title("🤖 Persona Chat")

# ------------------- LOGGED IN -------------------
if SessionManager.is_logged_in():
    st.switch_page("pages/current_chat.py")

# ------------------- NOT LOGGED IN -------------------
st.caption("Sign in or create an account to start chatting.")

tab_signin, tab_signup = st.tabs(["Sign in", "Sign up"])

# ---------- SIGN IN ----------
with tab_signin:
    with st.form("login_form", clear_on_submit=False):
        c1, c2 = st.columns(2)
        with c1:
            email_in = st.text_input("Email", autocomplete="username")
        with c2:
            pw_in = st.text_input("Password", type="password", autocomplete="current-password")
        submitted = st.form_submit_button("Sign in", type="primary")

    if submitted:
        if not email_in.strip() or not pw_in:
            st.error("Email and password required.")
        elif login(email_in, pw_in):
            toast_ok("Signed in successfully!")
            st.rerun()
        else:
            toast_err("Login failed. Please check credentials.")

# ---------- SIGN UP ----------
with tab_signup:
    with st.form("signup_form", clear_on_submit=False):
        c1, c2, c3 = st.columns(3)
        with c1:
            name_in = st.text_input("Full name")
        with c2:
            email_new = st.text_input("Email")
        with c3:
            pw_new = st.text_input("Password", type="password")
        submitted_su = st.form_submit_button("Sign up", type="secondary")

    if submitted_su:
        if not (name_in.strip() and email_new.strip() and pw_new):
            st.error("All fields are required.")
        elif signup(name_in, email_new, pw_new):
            if login(email_new, pw_new):
                toast_ok("Account created successfully!")
            else:
                toast_ok("Account created. Please sign in.")
            st.rerun()
        else:
            toast_err("Sign up failed.")
