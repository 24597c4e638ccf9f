import streamlit as st

from apps.ui.client import ApiClient


def client() -> ApiClient:
    if "api" not in st.session_state:
        st.session_state.api = ApiClient()
    return st.session_state.api


def require_login() -> dict:
    """Current account, or stop the page with a pointer to Home."""
    api = client()
    if not api.token:
        st.warning("Please sign in on the Home page to continue.")
        st.stop()
    if "me" not in st.session_state:
        st.session_state.me = api.me()
    return st.session_state.me


def sign_out() -> None:
    client().sign_out()
    for key in ("me", "wizard", "messages"):
        st.session_state.pop(key, None)
