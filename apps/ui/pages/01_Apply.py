import streamlit as st

from apps.ui.client import ApiBackend
from apps.ui.session import client, require_login
from core.errors import FormValidationError, PortalError
from domain.value_objects import Upload
from services.admissions.wizard import DOCUMENT_SLOTS, LAST_STEP, STEPS, ApplicationWizard
from services.uploads.files import FILE_TYPE_LABELS

COURSES = [
    "B.Tech Computer Science",
    "B.Tech Electronics",
    "B.Tech Mechanical",
    "B.Tech Civil",
    "B.Sc Physics",
    "B.Sc Chemistry",
    "B.Sc Mathematics",
    "B.Com",
    "BBA",
]
BOARDS = ["", "CBSE", "ICSE", "State Board", "IB", "Other"]
STREAMS = ["", "Science", "Commerce", "Arts"]
GENDERS = ["", "male", "female", "other"]

st.set_page_config(page_title="Apply", layout="wide")
st.title("Application Form")

me = require_login()

if "wizard" not in st.session_state:
    wizard = ApplicationWizard(backend=ApiBackend(client()))
    profile = client().get_profile() or {}
    for key in wizard.personal:
        wizard.personal[key] = profile.get(key) or ""
    wizard.personal["full_name"] = wizard.personal["full_name"] or (me.get("full_name") or "")
    st.session_state.wizard = wizard
wizard: ApplicationWizard = st.session_state.wizard

st.progress(wizard.step / LAST_STEP, text=f"Step {wizard.step} of {LAST_STEP}: {wizard.step_label}")


def text(section: dict, key: str, label: str, **kwargs) -> None:
    section[key] = st.text_input(label, value=section.get(key) or "", key=f"f_{key}", **kwargs)
    if key in wizard.errors:
        st.caption(f":red[{wizard.errors[key]}]")


def choice(section: dict, key: str, label: str, options: list[str]) -> None:
    current = section.get(key) or ""
    index = options.index(current) if current in options else 0
    section[key] = st.selectbox(label, options, index=index, key=f"f_{key}")
    if key in wizard.errors:
        st.caption(f":red[{wizard.errors[key]}]")


if wizard.step == 1:
    p = wizard.personal
    text(p, "full_name", "Full name *")
    text(p, "phone", "Phone (10 digits)")
    text(p, "date_of_birth", "Date of birth (YYYY-MM-DD)")
    choice(p, "gender", "Gender", GENDERS)
    text(p, "address", "Address")
    col1, col2, col3 = st.columns(3)
    with col1:
        text(p, "city", "City")
    with col2:
        text(p, "state", "State")
    with col3:
        text(p, "pincode", "Pincode")

elif wizard.step == 2:
    a = wizard.academic
    st.subheader("10th Standard")
    choice(a, "board_10th", "Board", BOARDS)
    text(a, "percentage_10th", "Percentage")
    text(a, "year_10th", "Year of passing")
    st.subheader("12th Standard")
    choice(a, "board_12th", "Board", BOARDS)
    text(a, "percentage_12th", "Percentage")
    text(a, "year_12th", "Year of passing")
    choice(a, "stream", "Stream", STREAMS)

elif wizard.step == 3:
    c = wizard.course
    choice(c, "course_name", "Course *", [""] + COURSES)
    text(c, "preferred_college", "Preferred college")

elif wizard.step == 4:
    st.caption("Photos: JPG/PNG/WebP. Other documents: PDF, JPG or PNG. Max 5MB each.")
    for slot in DOCUMENT_SLOTS:
        picked = st.file_uploader(FILE_TYPE_LABELS[slot], key=f"doc_{slot.value}")
        if picked is not None:
            reason = wizard.attach(slot, Upload(picked.name, picked.type or "", picked.getvalue()))
            if reason:
                st.error(reason)
        elif slot in wizard.documents:
            st.caption(f"Selected: {wizard.documents[slot].filename}")

else:
    st.subheader("Review")
    st.json({"personal": wizard.personal, "academic": wizard.academic, "course": wizard.course})
    st.write("Documents to upload:", [u.filename for u in wizard.documents.values()] or "none")


def report(outcome) -> None:
    if outcome.application_id is None:
        st.info("Profile saved. Choose a course to create your application.")
    else:
        st.success(f"Saved ({outcome.status}).")
    for failed in outcome.failed_uploads:
        st.error(f"{failed.filename}: {failed.error}")


back, draft, forward = st.columns(3)
with back:
    if st.button("Back", disabled=wizard.step == 1):
        wizard.prev_step()
        st.rerun()
with draft:
    if st.button("Save draft"):
        try:
            report(wizard.save_draft())
        except FormValidationError as e:
            wizard.errors = e.errors
            st.error(e.message)
        except PortalError as e:
            st.error(e.message)
with forward:
    if wizard.step < LAST_STEP:
        if st.button("Next"):
            if not wizard.next_step():
                st.rerun()
            st.error("Please fix the highlighted errors before proceeding.")
    elif st.button("Submit application", type="primary", disabled=not wizard.can_submit):
        try:
            outcome = wizard.submit()
            report(outcome)
            st.balloons()
            del st.session_state["wizard"]
        except FormValidationError as e:
            wizard.errors = e.errors
            st.error(e.message)
        except PortalError as e:
            st.error(e.message)

st.sidebar.write(" → ".join(STEPS))
