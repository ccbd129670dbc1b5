import html

import streamlit as st
from datetime import date, datetime, time, timezone

from pmboard.errors import PolicyViolation, ValidationError
from pmboard.filters import apply_filters
from pmboard.models import DateRange, FilterState, Priority, Status, Tag, WipState
from pmboard.projection import filtered_columns, wip_state
from pmboard.ui import current_user, get_board, get_directory, set_theme, task_card_html, time_in_status_df

set_theme(page_title="Board")

board = get_board(st.session_state)
directory = get_directory(st.session_state)
user = current_user(st.session_state)
now = board.now()

st.title("Kanban Board")

# ----- Filter bar -----
users = directory.users()
fc1, fc2, fc3, fc4 = st.columns([2.2, 1.1, 1.1, 1.6])
with fc1:
    search = st.text_input("Search (title / description)", placeholder="Type to filter…")
with fc2:
    assignee_name = st.selectbox("Assignee", ["All"] + [u.name for u in users], index=0)
with fc3:
    priority_choice = st.selectbox("Priority", ["All"] + [p.value for p in Priority], index=0)
with fc4:
    tag_choice = st.multiselect("Tags", [t.value for t in Tag])

with st.sidebar.expander("Deadline range", expanded=False):
    use_range = st.checkbox("Filter by deadline", value=False)
    start = st.date_input("From", value=date.today()) if use_range else None
    end = st.date_input("To", value=date.today()) if use_range else None

assignee_id = next((u.id for u in users if u.name == assignee_name), None)
filters = FilterState(
    assignee=assignee_id,
    priority=Priority(priority_choice) if priority_choice != "All" else None,
    tags=frozenset(Tag(t) for t in tag_choice),
    search=search or "",
    date_range=DateRange(start=start, end=end),
)
visible = apply_filters(board.tasks(), filters)
if filters.is_active():
    st.caption(f"Showing {len(visible)} of {len(board.tasks())} tasks")

# ----- Pending WIP override -----
pending = st.session_state.get("pm_pending_move")
if pending:
    st.warning(pending["message"])
    pc1, pc2 = st.columns(2)
    if pc1.button("Move anyway", key="pm-force-move"):
        board.move_task(pending["task_id"], Status(pending["to"]), pending.get("comment"), user=user, force=True)
        del st.session_state["pm_pending_move"]
        st.rerun()
    if pc2.button("Cancel", key="pm-cancel-move"):
        del st.session_state["pm_pending_move"]
        st.rerun()

# ----- Columns -----
columns = filtered_columns(board.columns(), [t.id for t in visible])
ui_cols = st.columns(len(columns))
for ui_col, col in zip(ui_cols, columns):
    full = board.column(col.id)
    state = wip_state(full)
    limit = f"/{full.wip_limit}" if full.wip_limit else ""
    with ui_col:
        st.markdown(
            f'<div class="pmb-col-header pmb-wip-{state.value}" style="background:{col.color};">'
            f'<span>{col.title}</span><span>{len(full.task_ids)}{limit}</span></div>',
            unsafe_allow_html=True,
        )
        if state == WipState.AT_CAPACITY:
            st.caption("At capacity")
        elif state == WipState.OVER_CAPACITY:
            st.caption("⚠️ Over capacity")

        for tid in col.task_ids:
            task = board.get_task(tid)
            st.markdown(task_card_html(task, now), unsafe_allow_html=True)
            with st.popover("Move / comment", use_container_width=True):
                targets = [s.value for s in Status if s != task.status]
                target = st.selectbox("Move to", targets, key=f"mv-to-{tid}")
                note = st.text_input("Comment (optional)", key=f"mv-note-{tid}")
                if st.button("Move", key=f"mv-btn-{tid}"):
                    try:
                        board.move_task(tid, Status(target), note or None, user=user)
                        st.rerun()
                    except PolicyViolation as exc:
                        st.session_state["pm_pending_move"] = {
                            "task_id": tid,
                            "to": target,
                            "comment": note or None,
                            "message": str(exc),
                        }
                        st.rerun()
                quick = st.text_input("Quick comment", key=f"qc-{tid}")
                if st.button("Add", key=f"qc-btn-{tid}"):
                    try:
                        board.add_comment(tid, quick, user=user, quick=True)
                        st.toast("Comment added", icon="✅")
                    except ValidationError as exc:
                        st.error(str(exc))

# ----- New task -----
with st.sidebar.form("new-task", clear_on_submit=True):
    st.markdown("#### New task")
    title = st.text_input("Title")
    description = st.text_area("Description")
    status = st.selectbox("Status", [s.value for s in Status])
    priority = st.selectbox("Priority", [p.value for p in Priority], index=1)
    owner = st.selectbox("Assignee", ["Unassigned"] + [u.name for u in users])
    tags = st.multiselect("Tags", [t.value for t in Tag])
    due = st.date_input("Deadline", value=date.today())
    if st.form_submit_button("Create"):
        try:
            board.create_task(
                title,
                created_by=user,
                description=description,
                status=status,
                priority=priority,
                assignee=next((u for u in users if u.name == owner), None),
                tags=tags,
                deadline=datetime.combine(due, time(17, 0), tzinfo=timezone.utc),
            )
            st.rerun()
        except (ValidationError, PolicyViolation) as exc:
            st.error(str(exc))

# ----- Task details -----
st.divider()
st.subheader("Task details")
if visible:
    selected_id = st.selectbox("Task", [t.id for t in visible], format_func=lambda tid: board.get_task(tid).title)
    task = board.get_task(selected_id)
    d1, d2 = st.columns([1.3, 1])
    with d1:
        st.markdown(f"**{task.title}** · {task.status.value} · reopened {task.reopen_count}×")
        st.write(task.description or "_No description_")
        with st.form(f"edit-{task.id}"):
            new_priority = st.selectbox("Priority", [p.value for p in Priority], index=list(Priority).index(task.priority))
            new_desc = st.text_area("Description", value=task.description)
            if st.form_submit_button("Save"):
                board.update_task(task.id, user=user, priority=new_priority, description=new_desc)
                st.rerun()
        micro = st.text_input("Progress note", key=f"micro-{task.id}")
        if st.button("Post note", key=f"micro-btn-{task.id}"):
            try:
                board.add_micro_update(task.id, micro, user=user)
                st.rerun()
            except ValidationError as exc:
                st.error(str(exc))
        st.bar_chart(time_in_status_df(task).set_index("status"))
    with d2:
        st.markdown("**Comments**")
        for c in task.comments:
            st.markdown(f"**{c.user.name}** · {c.timestamp:%b %d %H:%M}: {c.content}")
            for r in c.replies:
                st.markdown(f"&nbsp;&nbsp;&nbsp;↳ **{html.escape(r.user.name)}**: {html.escape(r.content)}", unsafe_allow_html=True)
            reply = st.text_input("Reply", key=f"reply-{c.id}", label_visibility="collapsed", placeholder="Reply…")
            if reply and st.button("Reply", key=f"reply-btn-{c.id}"):
                board.add_reply(task.id, c.id, reply, user=user)
                st.rerun()
        text = st.text_area("Add comment", key=f"comment-{task.id}")
        if st.button("Comment", key=f"comment-btn-{task.id}"):
            try:
                board.add_comment(task.id, text, user=user)
                st.rerun()
            except ValidationError as exc:
                st.error(str(exc))
        st.markdown("**History**")
        for entry in reversed(task.activity_log):
            change = f"{entry.previous_value} → {entry.new_value}" if entry.previous_value else (entry.new_value or "")
            st.caption(f"{entry.timestamp:%b %d %H:%M} · {entry.user.name} · {entry.type.value} {change} {entry.comment or ''}")
else:
    st.info("No tasks match the current filters.")
