import streamlit as st
import pandas as pd
import plotly.express as px
import plotly.graph_objects as go

from pmboard.alerts import derive_alerts
from pmboard.config import get_config
from pmboard.energy import compute_team_energy, energy_insights, energy_label
from pmboard.ui import current_user, get_board, get_ledger, set_theme

set_theme(page_title="Team Energy", page_icon="🔋")

config = get_config()
board = get_board(st.session_state)
ledger = get_ledger(st.session_state)
user = current_user(st.session_state)
now = board.now()
tasks = board.tasks()

snapshot = compute_team_energy(
    tasks, now=now, wip_limit=config.energy_wip_limit, stuck_days=config.stuck_days
)

st.title("Team Energy")

g1, g2 = st.columns([1.2, 1])
with g1:
    gauge = go.Figure(go.Indicator(
        mode="gauge+number",
        value=snapshot.score,
        title={"text": energy_label(snapshot.level)},
        gauge={
            "axis": {"range": [0, 100]},
            "steps": [
                {"range": [0, 30], "color": "#55efc4"},
                {"range": [30, 60], "color": "#ffeaa7"},
                {"range": [60, 80], "color": "#fab1a0"},
                {"range": [80, 100], "color": "#ff7675"},
            ],
        },
    ))
    gauge.update_layout(height=300, margin=dict(l=10, r=10, t=40, b=10), template="plotly_white")
    st.plotly_chart(gauge, use_container_width=True)
with g2:
    factors = pd.DataFrame([
        {"factor": "Task Load (%)", "value": snapshot.factors.task_load},
        {"factor": "WIP Breaches", "value": snapshot.factors.wip_breaches},
        {"factor": "Stuck Tasks", "value": snapshot.factors.stuck_tasks},
        {"factor": "Reopened Tasks", "value": snapshot.factors.reopened_tasks},
    ])
    fig = px.bar(factors, x="value", y="factor", orientation="h", color="value", color_continuous_scale="Blues")
    fig.update_layout(height=300, margin=dict(l=10, r=10, t=30, b=10), template="plotly_white", showlegend=False)
    st.plotly_chart(fig, use_container_width=True)

st.subheader("Insights")
for insight in energy_insights(snapshot):
    if insight["severity"] == "high":
        st.error(insight["text"])
    elif insight["severity"] == "medium":
        st.warning(insight["text"])
    else:
        st.success(insight["text"])

st.subheader("Time Intelligence Alerts")
active = ledger.active(derive_alerts(tasks, now=now, config=config))
st.caption(f"{len(active)} active alerts requiring attention")
for alert in active:
    box = st.error if alert.severity.value == "critical" else st.warning
    box(alert.message)
    if st.button("Acknowledge", key=f"ack-{alert.id}"):
        ledger.acknowledge(alert, user)
        st.rerun()
