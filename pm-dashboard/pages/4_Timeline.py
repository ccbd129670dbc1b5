import streamlit as st
from datetime import datetime, time, timezone
import pandas as pd
import plotly.express as px

from pmboard.errors import ValidationError
from pmboard.models import Status
from pmboard.timeline import create_public_timeline, public_tasks, quarter_summaries
from pmboard.ui import current_user, get_board, get_timelines, set_theme, tasks_to_df

set_theme(page_title="Timeline", page_icon="🗓")

board = get_board(st.session_state)
user = current_user(st.session_state)
timelines = get_timelines(st.session_state)
now = board.now()
tasks = board.tasks()

st.title("Roadmap Timeline")

summaries = quarter_summaries(tasks, now=now, year=now.year)
rows = []
for s in summaries:
    for status, count in s.by_status.items():
        rows.append({"quarter": s.name, "project_status": status.value, "tasks": count})
fig = px.bar(pd.DataFrame(rows), x="quarter", y="tasks", color="project_status", barmode="stack")
fig.update_layout(height=320, margin=dict(l=10, r=10, t=30, b=10), template="plotly_white")
st.plotly_chart(fig, use_container_width=True)

st.dataframe(
    pd.DataFrame([s.to_dict() for s in summaries]).drop(columns=["by_status"]),
    use_container_width=True,
    hide_index=True,
)

st.subheader("Share timeline")
with st.form("share-timeline"):
    title = st.text_input("Title")
    description = st.text_area("Description")
    columns = st.multiselect("Visible columns", [s.value for s in Status], default=[s.value for s in Status])
    hidden = st.multiselect("Hide tasks", [t.id for t in tasks], format_func=lambda tid: board.get_task(tid).title)
    expires = st.date_input("Expires on", value=None)
    protect = st.checkbox("Password protect")
    password_text = st.text_input("Password", type="password")
    allow_filters = st.checkbox("Let visitors filter", value=True)
    if st.form_submit_button("Create link"):
        try:
            settings = create_public_timeline(
                title,
                created_by=user,
                visible_columns=[Status(c) for c in columns],
                hidden_tasks=hidden,
                description=description,
                password=password_text if protect else None,
                allowed_filters=allow_filters,
                expires_at=datetime.combine(expires, time.max, tzinfo=timezone.utc) if expires else None,
                now=now,
            )
            timelines.append(settings)
            st.success(f"Timeline shared with access key {settings.access_key}")
        except ValidationError as exc:
            st.error(str(exc))

for settings in timelines:
    with st.expander(f"{settings.title} ({settings.access_key})"):
        st.caption(f"Open the Shared Timeline page with ?key={settings.access_key}")
        st.dataframe(tasks_to_df(public_tasks(settings, tasks), now=now), use_container_width=True, hide_index=True)
