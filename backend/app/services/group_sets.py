import logging
from datetime import datetime
from typing import List
from uuid import UUID

from sqlmodel import Session, select

from .common import get_group_set, get_unit, persisting
from .groups import delete_groups
from ..core.errors import ValidationFailed
from ..core.permissions import AuthorizationGate, GroupSetPolicy, UnitPolicy
from ..models.group import Group, GroupSet
from ..models.user import User
from ..schemas.group_set import GroupSetCreate, GroupSetUpdate

logger = logging.getLogger(__name__)


def _clean_name(name: str) -> str:
    name = name.strip()
    if not name:
        raise ValidationFailed("Group set name cannot be blank")
    return name


def list_group_sets(session: Session, actor: User, unit_id: UUID) -> List[GroupSet]:
    unit = get_unit(session, unit_id)
    AuthorizationGate(session).require(
        actor, UnitPolicy(unit), "get", "Not authorised to get group sets for this unit"
    )
    return list(
        session.exec(
            select(GroupSet).where(GroupSet.unit_id == unit.id).order_by(GroupSet.created_at)
        ).all()
    )


def create_group_set(
    session: Session, actor: User, unit_id: UUID, data: GroupSetCreate
) -> GroupSet:
    """Add a new group set to the given unit."""
    unit = get_unit(session, unit_id)
    AuthorizationGate(session).require(
        actor,
        UnitPolicy(unit),
        "update",
        "Not authorised to create a group set for this unit",
    )

    logger.info(f"Create group set: {actor.username} in {unit.code}")

    values = data.model_dump()
    values["name"] = _clean_name(values["name"])
    group_set = GroupSet(unit_id=unit.id, **values)

    with persisting(session, "Unable to create group set"):
        session.add(group_set)
    session.refresh(group_set)
    return group_set


def update_group_set(
    session: Session,
    actor: User,
    unit_id: UUID,
    group_set_id: UUID,
    data: GroupSetUpdate,
) -> GroupSet:
    """Edit the given group set. Only fields present in ``data`` change."""
    unit = get_unit(session, unit_id)
    group_set = get_group_set(session, unit, group_set_id)

    logger.info(f"Edit group set: {actor.username} in {unit.code}")

    AuthorizationGate(session).require(
        actor,
        UnitPolicy(unit),
        "update",
        "Not authorised to update group set for this unit",
    )

    changes = data.model_dump(exclude_unset=True, exclude_none=True)
    if "name" in changes:
        changes["name"] = _clean_name(changes["name"])

    for field, value in changes.items():
        setattr(group_set, field, value)
    group_set.updated_at = datetime.utcnow()

    with persisting(session, "Unable to update group set"):
        session.add(group_set)
    session.refresh(group_set)
    return group_set


def delete_group_set(
    session: Session, actor: User, unit_id: UUID, group_set_id: UUID
) -> None:
    """Delete a group set along with its groups and their memberships."""
    unit = get_unit(session, unit_id)
    group_set = get_group_set(session, unit, group_set_id)

    logger.info(f"Delete group set: {actor.username} in {unit.code}")

    AuthorizationGate(session).require(
        actor,
        UnitPolicy(unit),
        "update",
        "Not authorised to delete group set for this unit",
    )

    groups = session.exec(select(Group).where(Group.group_set_id == group_set.id)).all()

    with persisting(session, "Unable to delete group set"):
        delete_groups(session, groups)
        session.delete(group_set)


def list_groups(
    session: Session, actor: User, unit_id: UUID, group_set_id: UUID
) -> List[Group]:
    """Get the groups in a group set, ordered by number."""
    unit = get_unit(session, unit_id)
    group_set = get_group_set(session, unit, group_set_id)

    AuthorizationGate(session).require(
        actor,
        GroupSetPolicy(group_set),
        "get_groups",
        "Not authorised to get groups for this unit",
    )

    return list(
        session.exec(
            select(Group).where(Group.group_set_id == group_set.id).order_by(Group.number)
        ).all()
    )
