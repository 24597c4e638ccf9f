import streamlit as st

from apps.ui.session import client, require_login
from core.errors import PortalError

STATUS_FILTERS = ["all", "draft", "submitted", "under_review", "approved", "rejected"]
TARGETS = ["under_review", "approved", "rejected"]

st.set_page_config(page_title="Admin Review", layout="wide")
st.title("Admin Review")

me = require_login()
if not me.get("is_admin"):
    st.error("You don't have admin privileges.")
    st.stop()

api = client()

live = api.live_stats(refresh=st.button("Refresh live stats"))
cols = st.columns(4)
cols[0].metric("Total", live["total"])
cols[1].metric("Today", live["today_count"])
cols[2].metric("This week", live["week_count"])
cols[3].metric("Pending", live["submitted"] + live["under_review"])

search = st.text_input("Search by number, name, email or course")
status = st.selectbox("Status", STATUS_FILTERS)

try:
    listing = api.admin_applications(search, status)
except PortalError as e:
    st.error(e.message)
    st.stop()

stats = listing["stats"]
st.caption(
    f"{stats['total']} total · {stats['submitted']} submitted · {stats['under_review']} under review"
    f" · {stats['approved']} approved · {stats['rejected']} rejected"
)

for app in listing["applications"]:
    profile = app.get("profile") or {}
    title = f"{app['application_number']} · {profile.get('full_name') or 'N/A'} · {app['status']}"
    with st.expander(title):
        st.write(f"Email: {profile.get('email') or 'N/A'} · Phone: {profile.get('phone') or 'N/A'}")
        st.write(f"Course: {app['course_name']} · College: {app.get('preferred_college') or 'N/A'}")
        st.write(
            f"10th: {app.get('percentage_10th') or 'N/A'}% ({app.get('board_10th') or 'N/A'}) · "
            f"12th: {app.get('percentage_12th') or 'N/A'}% ({app.get('board_12th') or 'N/A'})"
        )
        for doc in app.get("documents") or []:
            if st.button(f"Open {doc['file_name']}", key=f"doc_{doc['id']}"):
                try:
                    st.markdown(f"[Download]({api.document_url(doc['id'])})")
                except PortalError as e:
                    st.error(e.message)

        if app["status"] == "draft":
            st.info("Draft applications cannot be reviewed.")
            continue

        with st.form(f"review_{app['id']}"):
            current = app["status"] if app["status"] in TARGETS else TARGETS[0]
            target = st.selectbox("New status", TARGETS, index=TARGETS.index(current))
            remarks = st.text_area("Remarks", value=app.get("remarks") or "")
            if st.form_submit_button("Update status"):
                try:
                    result = api.transition(app["id"], target, remarks)
                    st.success(f"Status updated to {target}.")
                    note = result.get("notification") or {}
                    if note.get("sent"):
                        st.info("Notification email sent.")
                    elif note.get("rate_limited"):
                        st.warning("Email provider is busy; the student was not notified yet.")
                    elif note:
                        st.warning(f"Status saved, but the email failed: {note.get('error')}")
                except PortalError as e:
                    st.error(e.message)

        st.download_button(
            "Export summary",
            data=api.export_summary(app["id"]),
            file_name=f"{app['application_number']}_summary.txt",
            key=f"export_{app['id']}",
        )
