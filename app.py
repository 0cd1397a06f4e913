import atexit
import logging
import uuid

import streamlit as st

from gpa_tracker.accounts import AccountDirectory
from gpa_tracker.backend_logic import GRADE_CHOICES, GRADE_POINTS, credit_value, format_gpa
from gpa_tracker.config import settings
from gpa_tracker.errors import GradeTrackerError
from gpa_tracker.gradebook import GradeBook, flush_all
from gpa_tracker.io_csv import (
    parse_subjects,
    read_csv_upload,
    record_to_frame,
    validate_subjects_csv,
)
from gpa_tracker.session import SessionContext
from gpa_tracker.storage import JsonFileStore

logging.basicConfig(level=settings.LOG_LEVEL)
logger = logging.getLogger(__name__)

# ------------------------
# Streamlit UI
# ------------------------

st.set_page_config(
    page_title=settings.APP_TITLE,
    page_icon="🎓",
    layout="wide",
)


@st.cache_resource
def _register_shutdown_flush():
    # once per server process: write unsaved edits of live sessions on shutdown
    atexit.register(flush_all)
    return True


def _browser_token() -> str:
    """Per-browser id kept in the URL, so a reload resumes this browser's session only."""
    token = st.query_params.get("sid")
    if not token:
        token = uuid.uuid4().hex
        st.query_params["sid"] = token
    return token


def _bootstrap():
    """One store / session / gradebook per browser session, kept across reruns."""
    if "gradebook" in st.session_state:
        return
    _register_shutdown_flush()
    store = JsonFileStore(settings.STORAGE_PATH)
    session = SessionContext.resume(store, token=_browser_token())
    gradebook = GradeBook(store, session)
    gradebook.load()

    st.session_state["store"] = store
    st.session_state["session"] = session
    st.session_state["directory"] = AccountDirectory(store)
    st.session_state["gradebook"] = gradebook
    logger.info(f"Using store at {settings.STORAGE_PATH}")


_bootstrap()
session: SessionContext = st.session_state["session"]
directory: AccountDirectory = st.session_state["directory"]
gradebook: GradeBook = st.session_state["gradebook"]


# ------------------------
# Callbacks
# ------------------------
def _update_field(field_name: str, key: str, index: int):
    value = st.session_state[key]
    if field_name == "credits":
        value = int(value)
    gradebook.update_subject(field_name, value, index)


def _logout():
    gradebook.flush()
    session.logout()
    gradebook.load()
    st.session_state.pop("sgpa", None)
    st.session_state.pop("cgpa", None)


def _ask(action: str, question: str):
    st.session_state["pending_confirm"] = (action, question)


# ------------------------
# Auth screens
# ------------------------
def render_auth():
    st.title(f"🎓 {settings.APP_TITLE}")
    st.write(
        "Record your subject grades and credit hours per semester and get your "
        "SGPA and CGPA. New accounts must be approved by the admin before first login."
    )

    login_tab, register_tab = st.tabs(["Login", "Register"])

    with login_tab:
        with st.form("login_form"):
            username = st.text_input("Username", key="login_username")
            password = st.text_input("Password", type="password", key="login_password")
            submitted = st.form_submit_button("Login", type="primary")
        if submitted:
            try:
                account = directory.authenticate(username, password)
            except GradeTrackerError as e:
                st.error(str(e))
            else:
                session.login(account)
                gradebook.load()
                st.rerun()

    with register_tab:
        with st.form("register_form"):
            username = st.text_input("Username", key="reg_username")
            password = st.text_input("Password", type="password", key="reg_password")
            submitted = st.form_submit_button("Create account")
        if submitted:
            try:
                directory.register(username, password)
            except GradeTrackerError as e:
                st.error(str(e))
            else:
                st.success("Account created! Now login.")


# ------------------------
# Calculator
# ------------------------
def render_semester_tabs():
    record = gradebook.record
    cols = st.columns(len(record.semesters) + 1)
    for number, semester in enumerate(record.semesters, start=1):
        with cols[number - 1]:
            st.button(
                f"Year {semester.year} - Sem {number}",
                key=f"sem_tab_{number}",
                type="primary" if number == record.current_semester else "secondary",
                on_click=gradebook.switch_semester,
                args=(number,),
            )
    with cols[-1]:
        st.button("➕ New semester", key="add_semester", on_click=gradebook.add_new_semester)


def render_subjects(editable: bool):
    subjects = gradebook.record.subjects
    header = st.columns([4, 2, 2, 1, 1])
    for col, label in zip(header, ["Subject", "Grade", "Credits", "Points", ""]):
        col.markdown(f"**{label}**")

    for index, subject in enumerate(subjects):
        row = st.columns([4, 2, 2, 1, 1])
        uid = id(subject)
        with row[0]:
            key = f"name_{uid}"
            st.text_input(
                "Subject",
                value=subject.name,
                key=key,
                placeholder="Enter subject name",
                label_visibility="collapsed",
                disabled=not editable,
                on_change=_update_field,
                args=("name", key, index),
            )
        with row[1]:
            key = f"grade_{uid}"
            st.selectbox(
                "Grade",
                GRADE_CHOICES,
                index=GRADE_CHOICES.index(subject.grade) if subject.grade in GRADE_POINTS else 0,
                format_func=lambda g: f"{g} ({GRADE_POINTS[g]})",
                key=key,
                label_visibility="collapsed",
                disabled=not editable,
                on_change=_update_field,
                args=("grade", key, index),
            )
        with row[2]:
            key = f"credits_{uid}"
            st.number_input(
                "Credits",
                min_value=1,
                max_value=10,
                step=1,
                value=min(10, max(1, credit_value(subject.credits))),
                key=key,
                label_visibility="collapsed",
                disabled=not editable,
                on_change=_update_field,
                args=("credits", key, index),
            )
        with row[3]:
            st.write(subject.points)
        with row[4]:
            if editable:
                st.button("🗑️", key=f"del_{uid}", on_click=gradebook.delete_subject, args=(index,))


def render_results():
    c1, c2, c3, c4 = st.columns(4)
    with c1:
        if st.button("Calculate SGPA", type="primary"):
            st.session_state["sgpa"] = gradebook.compute_sgpa()
    with c2:
        if st.button("Calculate CGPA", type="primary"):
            st.session_state["cgpa"] = gradebook.compute_cgpa()
    with c3:
        if st.button("💾 Save now"):
            gradebook.flush()
            st.toast("Saved")
    with c4:
        st.button("Clear semester", on_click=gradebook.clear_current_semester)

    sgpa = st.session_state.get("sgpa")
    if sgpa and sgpa["semester"] == gradebook.record.current_semester:
        st.metric(
            f"📊 Year {sgpa['year']} - Semester {sgpa['semester']} SGPA",
            format_gpa(sgpa["sgpa"]),
        )
        st.caption(f"Total Credits: {sgpa['total_credits']} | Formula: Σ(Grade×Credits)/ΣCredits")

    cgpa = st.session_state.get("cgpa")
    if cgpa:
        m1, m2, m3 = st.columns(3)
        m1.metric("🎯 Overall CGPA (All Years)", format_gpa(cgpa["cgpa"]))
        m2.metric("Total Credits Completed", cgpa["total_credits"])
        m3.metric("Semesters | Subjects", f"{cgpa['semester_count']} | {cgpa['subject_count']}")


def render_danger_zone():
    st.markdown("---")
    d1, d2 = st.columns(2)
    with d1:
        st.button(
            "Reset all semesters",
            on_click=_ask,
            args=("reset", "Reset all semesters and marks?"),
        )
    with d2:
        st.button(
            "Delete saved marks",
            on_click=_ask,
            args=("clear", f"Delete all saved marks for {session.username}?"),
        )

    pending = st.session_state.get("pending_confirm")
    if pending:
        action, question = pending
        st.warning(question)
        yes, no = st.columns(2)
        if yes.button("Yes", type="primary", key="confirm_yes"):
            if action == "reset":
                gradebook.reset_all(confirmed=True)
            else:
                gradebook.clear_saved_data(confirmed=True)
            st.session_state.pop("pending_confirm", None)
            st.session_state.pop("sgpa", None)
            st.session_state.pop("cgpa", None)
            st.rerun()
        if no.button("No", key="confirm_no"):
            st.session_state.pop("pending_confirm", None)
            st.rerun()


def render_csv(editable: bool):
    with st.expander("Import / export CSV"):
        if editable:
            uploaded = st.file_uploader(
                "Upload subjects for this semester (Subject, Grade, Credits)",
                type=["csv"],
                key="subjects_csv",
            )
            replace = st.checkbox("Replace the current semester's subjects")
            if uploaded is not None and st.button("Import"):
                try:
                    subjects = parse_subjects(validate_subjects_csv(read_csv_upload(uploaded)))
                except (GradeTrackerError, ValueError) as e:
                    st.error(f"CSV error: {e}")
                else:
                    count = gradebook.import_subjects(subjects, replace=replace)
                    st.success(f"Imported {count} subjects.")
                    st.rerun()

        st.download_button(
            "Download all marks (CSV)",
            record_to_frame(gradebook.record).to_csv(index=False),
            file_name=f"marks_{session.username}.csv",
            mime="text/csv",
        )


# ------------------------
# Admin panel
# ------------------------
def _toggle(index: int):
    try:
        account = directory.toggle_approval(index)
    except GradeTrackerError as e:
        st.session_state["admin_notice"] = ("error", str(e))
    else:
        state = "APPROVED" if account.approved else "BLOCKED"
        st.session_state["admin_notice"] = ("info", f"{account.username} is now {state} by admin.")


def render_admin():
    st.markdown("---")
    st.subheader("👥 User approvals")
    notice = st.session_state.pop("admin_notice", None)
    if notice:
        kind, message = notice
        getattr(st, kind)(message)

    for index, account in enumerate(directory.accounts()):
        c1, c2, c3, c4 = st.columns([3, 2, 2, 2])
        c1.write(account.username)
        c2.write(account.role)
        c3.write("✅ Yes" if account.approved else "❌ No")
        with c4:
            if account.is_admin:
                st.caption("Admin")
            else:
                st.button(
                    "Revoke" if account.approved else "Approve",
                    key=f"toggle_{index}",
                    on_click=_toggle,
                    args=(index,),
                )

    st.subheader("🕒 Login log")
    logs = directory.login_logs()
    if logs:
        st.dataframe(
            [{"User": log.username, "Time": log.display_time()} for log in logs],
            use_container_width=True,
        )
    else:
        st.info("No logins recorded yet.")


def render_app():
    top1, top2 = st.columns([6, 1])
    with top1:
        st.title(f"🎓 {settings.APP_TITLE}")
        st.caption(f"Logged in as {session.username} ({session.account.role})")
    with top2:
        st.button("Logout", on_click=_logout)

    # only the admin edits marks; students get a read-only view
    editable = session.is_admin

    render_semester_tabs()
    render_subjects(editable)
    if editable:
        st.button("➕ Add subject", on_click=gradebook.add_subject)
    render_results()
    render_csv(editable)
    if editable:
        render_danger_zone()
        render_admin()


if session.is_authenticated:
    render_app()
else:
    render_auth()

# To run:
# streamlit run app.py
