import streamlit as st

from pmboard.errors import ValidationError
from pmboard.models import Status
from pmboard.timeline import quarter_of
from pmboard.ui import current_user, get_board, set_theme

set_theme(page_title="Retrospectives", page_icon="🔁")

board = get_board(st.session_state)
user = current_user(st.session_state)
now = board.now()

st.title("Retrospectives")
period = st.selectbox("Period", ["Q1", "Q2", "Q3", "Q4"], index=["Q1", "Q2", "Q3", "Q4"].index(quarter_of(now)))

with st.form("new-retro", clear_on_submit=True):
    st.markdown(f"#### New retrospective for {period}")
    lessons = st.text_area("Lessons learned (one per line)")
    blockers = st.text_area("Blockers (one per line)")
    wins = st.text_area("Wins (one per line)")
    done = [t for t in board.tasks() if t.status == Status.DONE]
    related = st.multiselect("Related tasks", [t.id for t in done], format_func=lambda tid: board.get_task(tid).title)
    if st.form_submit_button("Create"):
        try:
            board.create_retrospective(
                period,
                created_by=user,
                lessons_learned=lessons.splitlines(),
                blockers=blockers.splitlines(),
                wins=wins.splitlines(),
                related_task_ids=related,
            )
            st.success("Retrospective saved")
        except ValidationError as exc:
            st.error(str(exc))

for retro in reversed(board.retrospectives_for(period)):
    with st.expander(f"{retro.period} • {retro.created_by.name} • {retro.created_at:%b %d, %Y}"):
        c1, c2, c3 = st.columns(3)
        for col, heading, items in ((c1, "Lessons", retro.lessons_learned), (c2, "Blockers", retro.blockers), (c3, "Wins", retro.wins)):
            col.markdown(f"**{heading}**")
            for item in items:
                col.markdown(f"- {item}")
