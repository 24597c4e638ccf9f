import streamlit as st

from apps.ui.session import client, require_login
from core.errors import PortalError

STATUS_BADGES = {
    "draft": ":gray[Draft]",
    "submitted": ":blue[Submitted]",
    "under_review": ":orange[Under Review]",
    "approved": ":green[Approved]",
    "rejected": ":red[Rejected]",
}

st.set_page_config(page_title="My Applications", layout="wide")
st.title("My Applications")

require_login()

try:
    apps = client().my_applications()
except PortalError as e:
    st.error(e.message)
    st.stop()

if not apps:
    st.info("You have not started an application yet. Use the Apply page to begin.")

for app in apps:
    with st.container(border=True):
        st.subheader(f"{app['application_number']} · {app['course_name']}")
        st.markdown(STATUS_BADGES.get(app["status"], app["status"]))
        st.caption(f"Submitted: {(app.get('submitted_at') or 'not yet')[:10]}")
        if app.get("remarks"):
            st.write(f"Remarks: {app['remarks']}")
        if app.get("admit_card"):
            st.success(f"Admit card number: {app['admit_card']['admit_card_number']}")
        docs = app.get("documents") or []
        st.write(f"Documents on file: {len(docs)}")
        for doc in docs:
            st.caption(f"- {doc['document_type']}: {doc['file_name']}")
