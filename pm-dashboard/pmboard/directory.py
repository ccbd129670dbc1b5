"""Users, tags and roles managed from the settings panel.

These are reference data for the board; tasks keep their own copies of the
User records they point at.
"""

from __future__ import annotations

import random
import re
import uuid
from typing import Dict, Iterable, List, Optional

import structlog

from .errors import NotFound, ValidationError
from .models import RoleDefinition, TagDefinition, User


log = structlog.get_logger()

EMAIL_RE = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")

PERMISSIONS = (
    "create_task",
    "edit_task",
    "delete_task",
    "manage_users",
    "manage_roles",
    "manage_tags",
)

DEFAULT_TAG_COLOR = "#3b82f6"


def _random_color() -> str:
    return "#{:06x}".format(random.randint(0, 0xFFFFFF))


def _require(value: Optional[str], field: str, message: str) -> str:
    value = (value or "").strip()
    if not value:
        raise ValidationError(message, field=field)
    return value


class Directory:
    def __init__(self):
        self._users: Dict[str, User] = {}
        self._tags: Dict[str, TagDefinition] = {}
        self._roles: Dict[str, RoleDefinition] = {}

    # -------------------- users --------------------
    def users(self) -> List[User]:
        return list(self._users.values())

    def get_user(self, user_id: str) -> Optional[User]:
        return self._users.get(user_id)

    def _validate_user(self, name: str, email: str):
        name, email = (name or "").strip(), (email or "").strip()
        if not name or not email:
            raise ValidationError("Name and email are required.", field="email" if name else "name")
        if not EMAIL_RE.match(email):
            raise ValidationError("Please enter a valid email address.", field="email")
        return name, email

    def add_user(self, name: str, email: str, role: str, *, color: Optional[str] = None) -> User:
        name, email = self._validate_user(name, email)
        user = User(id=str(uuid.uuid4()), name=name, email=email, role=role, color=color or _random_color())
        self._users[user.id] = user
        log.info("directory.user_created", user_id=user.id)
        return user

    def adopt_user(self, user: User) -> User:
        self._users[user.id] = user
        return user

    def update_user(self, user_id: str, *, name: str, email: str, role: str) -> User:
        name, email = self._validate_user(name, email)
        current = self._users.get(user_id)
        if current is None:
            raise NotFound("user", user_id)
        user = User(id=current.id, name=name, email=email, role=role, color=current.color)
        self._users[user_id] = user
        log.info("directory.user_updated", user_id=user_id)
        return user

    def delete_user(self, user_id: str) -> bool:
        return self._users.pop(user_id, None) is not None

    # -------------------- tags --------------------
    def tags(self) -> List[TagDefinition]:
        return list(self._tags.values())

    def _check_unique(self, existing: Iterable, name: str, field: str, skip_id: Optional[str] = None) -> None:
        for item in existing:
            if item.id != skip_id and item.name.lower() == name.lower():
                raise ValidationError(f"A {field} named '{name}' already exists.", field=field)

    def add_tag(self, name: str, color: str = DEFAULT_TAG_COLOR) -> TagDefinition:
        name = _require(name, "tag", "Tag name cannot be empty.")
        self._check_unique(self._tags.values(), name, "tag")
        tag = TagDefinition(name=name, color=color or DEFAULT_TAG_COLOR)
        self._tags[tag.id] = tag
        return tag

    def update_tag(self, tag_id: str, *, name: str, color: str) -> TagDefinition:
        name = _require(name, "tag", "Tag name cannot be empty.")
        tag = self._tags.get(tag_id)
        if tag is None:
            raise NotFound("tag", tag_id)
        self._check_unique(self._tags.values(), name, "tag", skip_id=tag_id)
        tag.name = name
        tag.color = color or tag.color
        return tag

    def delete_tag(self, tag_id: str) -> bool:
        return self._tags.pop(tag_id, None) is not None

    # -------------------- roles --------------------
    def roles(self) -> List[RoleDefinition]:
        return list(self._roles.values())

    def _validate_permissions(self, permissions: Iterable[str]) -> List[str]:
        permissions = list(dict.fromkeys(permissions))
        unknown = [p for p in permissions if p not in PERMISSIONS]
        if unknown:
            raise ValidationError(f"Unknown permissions: {', '.join(unknown)}", field="permissions")
        return permissions

    def add_role(self, name: str, permissions: Iterable[str] = ()) -> RoleDefinition:
        name = _require(name, "role", "Role name cannot be empty.")
        self._check_unique(self._roles.values(), name, "role")
        role = RoleDefinition(name=name, permissions=self._validate_permissions(permissions))
        self._roles[role.id] = role
        return role

    def update_role(self, role_id: str, *, name: str, permissions: Iterable[str]) -> RoleDefinition:
        name = _require(name, "role", "Role name cannot be empty.")
        role = self._roles.get(role_id)
        if role is None:
            raise NotFound("role", role_id)
        self._check_unique(self._roles.values(), name, "role", skip_id=role_id)
        perms = self._validate_permissions(permissions)
        role.name = name
        role.permissions = perms
        return role

    def delete_role(self, role_id: str) -> bool:
        return self._roles.pop(role_id, None) is not None
