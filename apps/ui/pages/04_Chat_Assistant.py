import streamlit as st

from apps.ui.session import client, require_login
from core.errors import PortalError, RateLimitedError
from services.llm.prompts import GREETING

st.set_page_config(page_title="AI Chat Assistant", layout="wide")

st.title("AI Chat Assistant")

st.caption("Ask SAM about admissions, documents, deadlines and courses.")

require_login()

if "messages" not in st.session_state:
    st.session_state.messages = [{"role": "assistant", "content": GREETING}]

for msg in st.session_state.messages:
    with st.chat_message(msg["role"]):
        st.markdown(msg["content"])

if prompt := st.chat_input("Ask about admissions..."):
    st.session_state.messages.append({"role": "user", "content": prompt})
    with st.chat_message("user"):
        st.markdown(prompt)

    # the greeting is UI-only and not part of the conversation sent upstream
    history = st.session_state.messages[1:]
    with st.chat_message("assistant"):
        try:
            reply = st.write_stream(client().chat_stream(history))
        except RateLimitedError as e:
            reply = None
            st.warning(e.message)
        except PortalError as e:
            reply = None
            st.error(e.message)
    if reply:
        st.session_state.messages.append({"role": "assistant", "content": reply})
