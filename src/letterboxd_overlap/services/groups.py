from __future__ import annotations

from typing import List, Optional, Sequence

from sqlalchemy import select
from sqlalchemy.orm import Session

from ..db import models
from .analysis import normalize_usernames


def create_group(session: Session, name: str, users: Sequence[str]) -> models.Group:
    name = name.strip()
    if not name:
        raise ValueError("Group name is required.")
    group = models.Group(name=name, users=normalize_usernames(users))
    session.add(group)
    session.flush()
    return group


def list_groups(session: Session) -> List[models.Group]:
    stmt = select(models.Group).order_by(models.Group.created_at.desc(), models.Group.id.desc())
    return list(session.scalars(stmt).all())


def get_group(session: Session, group_id: int) -> Optional[models.Group]:
    return session.get(models.Group, group_id)


def rename_group(session: Session, group_id: int, new_name: str) -> Optional[models.Group]:
    group = session.get(models.Group, group_id)
    if not group:
        return None
    group.name = new_name.strip() or group.name
    return group


def delete_group(session: Session, group_id: int) -> bool:
    group = session.get(models.Group, group_id)
    if not group:
        return False
    session.delete(group)
    return True
