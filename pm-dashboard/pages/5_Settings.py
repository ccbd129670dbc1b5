import streamlit as st
import pandas as pd

from pmboard.directory import PERMISSIONS
from pmboard.errors import NotFound, ValidationError
from pmboard.ui import CURRENT_USER_KEY, get_board, get_directory, set_theme, tag_badge_html

set_theme(page_title="Settings", page_icon="⚙️")

get_board(st.session_state)
directory = get_directory(st.session_state)

st.title("Settings")
users_tab, tags_tab, roles_tab = st.tabs(["Users", "Tags", "Roles"])

with users_tab:
    users = directory.users()
    st.dataframe(pd.DataFrame([u.to_dict() for u in users]), use_container_width=True, hide_index=True)
    st.selectbox(
        "Acting as",
        [u.id for u in users],
        format_func=lambda uid: directory.get_user(uid).name,
        key=CURRENT_USER_KEY,
    )
    with st.form("add-user", clear_on_submit=True):
        name = st.text_input("Name")
        email = st.text_input("Email")
        role = st.selectbox("Role", [r.name for r in directory.roles()] or ["Developer"])
        if st.form_submit_button("Add user"):
            try:
                directory.add_user(name, email, role)
                st.rerun()
            except ValidationError as exc:
                st.error(str(exc))

    if users:
        edit_id = st.selectbox("Edit user", [u.id for u in users], format_func=lambda uid: directory.get_user(uid).name)
        editing = directory.get_user(edit_id)
        role_names = [r.name for r in directory.roles()] or [editing.role]
        with st.form("edit-user"):
            e_name = st.text_input("Name", value=editing.name, key=f"eu-name-{edit_id}")
            e_email = st.text_input("Email", value=editing.email, key=f"eu-email-{edit_id}")
            e_role = st.selectbox("Role", role_names, index=role_names.index(editing.role) if editing.role in role_names else 0, key=f"eu-role-{edit_id}")
            save, remove = st.columns(2)
            if save.form_submit_button("Save"):
                try:
                    directory.update_user(edit_id, name=e_name, email=e_email, role=e_role)
                    st.rerun()
                except (ValidationError, NotFound) as exc:
                    st.error(str(exc))
            if remove.form_submit_button("Delete"):
                directory.delete_user(edit_id)
                if st.session_state.get(CURRENT_USER_KEY) == edit_id:
                    del st.session_state[CURRENT_USER_KEY]
                st.rerun()

with tags_tab:
    for tag in directory.tags():
        st.markdown(tag_badge_html(tag), unsafe_allow_html=True)
    with st.form("add-tag", clear_on_submit=True):
        tag_name = st.text_input("Tag name")
        tag_color = st.color_picker("Color", "#3b82f6")
        if st.form_submit_button("Add tag"):
            try:
                directory.add_tag(tag_name, tag_color)
                st.rerun()
            except ValidationError as exc:
                st.error(str(exc))

    tags = directory.tags()
    if tags:
        tag_id = st.selectbox("Edit tag", [t.id for t in tags], format_func=lambda tid: next(t.name for t in tags if t.id == tid))
        tag = next(t for t in tags if t.id == tag_id)
        with st.form("edit-tag"):
            t_name = st.text_input("Tag name", value=tag.name, key=f"et-name-{tag_id}")
            t_color = st.color_picker("Color", tag.color, key=f"et-color-{tag_id}")
            save, remove = st.columns(2)
            if save.form_submit_button("Save"):
                try:
                    directory.update_tag(tag_id, name=t_name, color=t_color)
                    st.rerun()
                except (ValidationError, NotFound) as exc:
                    st.error(str(exc))
            if remove.form_submit_button("Delete"):
                directory.delete_tag(tag_id)
                st.rerun()

with roles_tab:
    for role in directory.roles():
        st.markdown(f"**{role.name}**: {', '.join(role.permissions) or '—'}")
    with st.form("add-role", clear_on_submit=True):
        role_name = st.text_input("Role name")
        perms = st.multiselect("Permissions", list(PERMISSIONS))
        if st.form_submit_button("Add role"):
            try:
                directory.add_role(role_name, perms)
                st.rerun()
            except ValidationError as exc:
                st.error(str(exc))

    roles = directory.roles()
    if roles:
        role_id = st.selectbox("Edit role", [r.id for r in roles], format_func=lambda rid: next(r.name for r in roles if r.id == rid))
        role = next(r for r in roles if r.id == role_id)
        with st.form("edit-role"):
            r_name = st.text_input("Role name", value=role.name, key=f"er-name-{role_id}")
            r_perms = st.multiselect("Permissions", list(PERMISSIONS), default=role.permissions, key=f"er-perms-{role_id}")
            save, remove = st.columns(2)
            if save.form_submit_button("Save"):
                try:
                    directory.update_role(role_id, name=r_name, permissions=r_perms)
                    st.rerun()
                except (ValidationError, NotFound) as exc:
                    st.error(str(exc))
            if remove.form_submit_button("Delete"):
                directory.delete_role(role_id)
                st.rerun()
