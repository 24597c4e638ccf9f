import streamlit as st

from apps.ui.session import client, sign_out
from core.errors import FormValidationError, PortalError
from core.logging import configure_logging

configure_logging()

st.set_page_config(page_title="Student Admission Portal", layout="wide")

st.title("Student Admission Portal")

api = client()

if api.token:
    me = st.session_state.get("me") or api.me()
    st.session_state.me = me
    st.success(f"Signed in as {me.get('full_name') or me['email']}")
    st.markdown(
        """
Use the sidebar to:

- Fill in and submit your application
- Track the status of your applications
- Review applications (administrators)
- Ask SAM, the admission assistant
"""
    )
    if st.button("Sign out"):
        sign_out()
        st.rerun()
    st.stop()

sign_in_tab, sign_up_tab = st.tabs(["Sign in", "Create account"])

with sign_in_tab:
    with st.form("sign_in"):
        email = st.text_input("Email")
        password = st.text_input("Password", type="password")
        if st.form_submit_button("Sign in"):
            try:
                api.sign_in(email, password)
                st.session_state.me = api.me()
                st.rerun()
            except PortalError as e:
                st.error(e.message)

with sign_up_tab:
    with st.form("sign_up"):
        full_name = st.text_input("Full name")
        new_email = st.text_input("Email", key="signup_email")
        new_password = st.text_input("Password", type="password", key="signup_password")
        if st.form_submit_button("Create account"):
            try:
                api.sign_up(new_email, new_password, full_name)
                st.success("Account created. You can sign in now.")
            except FormValidationError as e:
                for msg in e.errors.values():
                    st.error(msg)
            except PortalError as e:
                st.error(e.message)
