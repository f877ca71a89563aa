import logging
from datetime import datetime
from typing import Iterable, Optional
from uuid import UUID

from sqlmodel import Session, select, func

from roster_core import default_group_name, next_group_number

from .common import get_group, get_group_set, get_tutorial, get_unit, persisting
from .memberships import active_member_count, active_projects
from ..core.errors import Conflict, ValidationFailed
from ..core.permissions import AuthorizationGate, GroupPolicy, GroupSetPolicy
from ..models.group import Group, GroupMembership, GroupSet
from ..models.unit import Tutorial
from ..models.user import User
from ..schemas.group import GroupCreate, GroupUpdate

logger = logging.getLogger(__name__)


def _name_taken(
    session: Session, group_set: GroupSet, name: str, exclude_id: Optional[UUID] = None
) -> bool:
    query = select(Group.id).where(Group.group_set_id == group_set.id, Group.name == name)
    if exclude_id is not None:
        query = query.where(Group.id != exclude_id)
    return session.exec(query).first() is not None


def ensure_unique_name(
    session: Session, group_set: GroupSet, name: str, exclude_id: Optional[UUID] = None
) -> None:
    if _name_taken(session, group_set, name, exclude_id):
        raise Conflict(f"This group name is not unique to the {group_set.name} group set.")


def allocate_group(
    session: Session, group_set: GroupSet, tutorial: Tutorial, name: Optional[str]
) -> Group:
    """
    Number, name and insert a new group.

    The caller must hold the group set row lock so two creations cannot pick
    the same number. Blank names become "Group {n}".
    """
    current_max = session.exec(
        select(func.max(Group.number)).where(Group.group_set_id == group_set.id)
    ).one()
    number = next_group_number([current_max], group_set.last_group_number)

    if name is None or not name.strip():
        # Skip numbers whose default name was taken by a renamed group
        while _name_taken(session, group_set, default_group_name(number)):
            number += 1
        name = default_group_name(number)
    else:
        name = name.strip()
        ensure_unique_name(session, group_set, name)

    group = Group(
        group_set_id=group_set.id,
        tutorial_id=tutorial.id,
        name=name,
        number=number,
    )
    group_set.last_group_number = number
    session.add(group_set)
    session.add(group)
    session.flush()
    return group


def delete_groups(session: Session, groups: Iterable[Group]) -> None:
    """Delete groups and every membership row they own."""
    groups = list(groups)
    if not groups:
        return

    group_ids = [g.id for g in groups]
    for membership in session.exec(
        select(GroupMembership).where(GroupMembership.group_id.in_(group_ids))
    ).all():
        session.delete(membership)
    session.flush()

    for group in groups:
        session.delete(group)
    session.flush()


def create_group(
    session: Session, actor: User, unit_id: UUID, group_set_id: UUID, data: GroupCreate
) -> Group:
    """Add a new group to the given unit's group set."""
    unit = get_unit(session, unit_id)
    group_set = get_group_set(session, unit, group_set_id, lock=True)
    tutorial = get_tutorial(session, unit, data.tutorial_id)

    AuthorizationGate(session).require(
        actor,
        GroupSetPolicy(group_set),
        "create_group",
        "Not authorised to create a group for this group set",
    )

    with persisting(session, "Unable to create group"):
        group = allocate_group(session, group_set, tutorial, data.name)
        logger.info(f"Create group: {actor.username} created {group.name} in {unit.code}")
    session.refresh(group)
    return group


def update_group(
    session: Session,
    actor: User,
    unit_id: UUID,
    group_set_id: UUID,
    group_id: UUID,
    data: GroupUpdate,
) -> Group:
    """Rename a group or move it to another tutorial."""
    unit = get_unit(session, unit_id)
    group_set = get_group_set(session, unit, group_set_id)
    group = get_group(session, group_set, group_id, lock=True)

    changes = data.model_dump(exclude_unset=True, exclude_none=True)
    if "name" in changes:
        changes["name"] = changes["name"].strip()
        if not changes["name"]:
            raise ValidationFailed("Group name cannot be blank")
    if "tutorial_id" in changes:
        get_tutorial(session, unit, changes["tutorial_id"])

    AuthorizationGate(session).require(
        actor, GroupPolicy(group, group_set), "manage_group", "Not authorised to update this group"
    )

    # Switching tutorials would strand members of a same-class group
    if (
        changes.get("tutorial_id", group.tutorial_id) != group.tutorial_id
        and group_set.keep_groups_in_same_class
        and active_member_count(session, group) > 0
    ):
        raise Conflict(
            "Cannot modify group tutorial as members already exist and they must be "
            "in the same tutorial. Clear all members first."
        )

    if changes.get("name", group.name) != group.name:
        ensure_unique_name(session, group_set, changes["name"], exclude_id=group.id)

    logger.info(f"Edit group: {actor.username} edited {group.name} in {unit.code}")

    for field, value in changes.items():
        setattr(group, field, value)
    group.updated_at = datetime.utcnow()

    with persisting(session, "Unable to update group"):
        session.add(group)
    session.refresh(group)
    return group


def delete_group(
    session: Session, actor: User, unit_id: UUID, group_set_id: UUID, group_id: UUID
) -> None:
    """
    Delete a group and its memberships.

    Staff may always delete. Anyone else may only delete an empty group or a
    group in which they are the only member.
    """
    unit = get_unit(session, unit_id)
    group_set = get_group_set(session, unit, group_set_id)
    group = get_group(session, group_set, group_id, lock=True)

    gate = AuthorizationGate(session)
    gate.require(
        actor, GroupPolicy(group, group_set), "manage_group", "Not authorised to delete this group"
    )

    if not gate.is_staff(actor, unit.id):
        projects = active_projects(session, group)
        if len(projects) > 1:
            raise Conflict("You cannot delete a group with members")
        if projects and projects[0].user_id != actor.id:
            raise Conflict("You cannot delete this group")

    logger.info(f"Delete group: {actor.username} deleted {group.name} in {unit.code}")

    with persisting(session, "Unable to delete group"):
        delete_groups(session, [group])
