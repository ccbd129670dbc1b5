import streamlit as st

from pmboard.filters import apply_filters
from pmboard.models import FilterState, Priority
from pmboard.timeline import check_password, find_timeline, is_expired, public_tasks
from pmboard.ui import get_board, get_timelines, set_theme, tasks_to_df

set_theme(page_title="Shared Timeline", page_icon="🔗")

board = get_board(st.session_state)
timelines = get_timelines(st.session_state)
now = board.now()

st.title("Shared Timeline")

access_key = st.text_input("Access key", value=st.query_params.get("key", "")).strip()
if not access_key:
    st.info("Enter the access key from a shared timeline link.")
    st.stop()

settings = find_timeline(timelines, access_key)
if settings is None:
    st.error("No shared timeline matches this key.")
    st.stop()
if is_expired(settings, now):
    st.error("This shared timeline has expired.")
    st.stop()

unlocked = st.session_state.setdefault("pm_unlocked_timelines", set())
if settings.is_password_protected and settings.access_key not in unlocked:
    with st.form("timeline-password"):
        candidate = st.text_input("Password", type="password")
        if st.form_submit_button("Open"):
            if check_password(settings, candidate):
                unlocked.add(settings.access_key)
                st.rerun()
            st.error("Incorrect password.")
    st.stop()

st.subheader(settings.title)
if settings.description:
    st.write(settings.description)
st.caption(f"Shared by {settings.created_by.name} · columns: {', '.join(s.value for s in settings.visible_columns)}")

tasks = public_tasks(settings, board.tasks())
if settings.allowed_filters:
    f1, f2 = st.columns([2, 1])
    search = f1.text_input("Search")
    priority = f2.selectbox("Priority", ["All"] + [p.value for p in Priority])
    tasks = apply_filters(
        tasks,
        FilterState(search=search or "", priority=Priority(priority) if priority != "All" else None),
    )

st.dataframe(
    tasks_to_df(tasks, now=now).drop(columns=["id"]),
    use_container_width=True,
    hide_index=True,
)
