import streamlit as st

from pmboard.config import get_config
from pmboard.energy import compute_team_energy, energy_label
from pmboard.ui import get_board, set_theme

set_theme()

board = get_board(st.session_state)
tasks = board.tasks()
now = board.now()
config = get_config()
snapshot = compute_team_energy(tasks, now=now, wip_limit=config.energy_wip_limit, stuck_days=config.stuck_days)

st.title("Product Board")
st.markdown(
    "<span style='color:#51658a;font-size:1.1rem;'>Kanban board, roadmap, retrospectives and team energy in one place.</span>",
    unsafe_allow_html=True,
)

c1, c2, c3, c4 = st.columns(4)
c1.metric("Tasks", len(tasks))
c2.metric("In Progress", len(board.column("In Progress").task_ids))
c3.metric("Overdue", sum(1 for t in tasks if t.is_overdue(now)))
c4.metric("Team Energy", energy_label(snapshot.level), f"{snapshot.score:.0f}/100", delta_color="off")

st.info("Use the sidebar to open the Board, Team Energy, Retrospectives and Timeline pages.")
