"""
Group membership lifecycle.

Memberships form an append-only log: adding a project inserts a new active
row, removing it flips that row inactive. The current roster of a group is
the set of its active rows.
"""

import logging
from datetime import datetime
from typing import List, Optional
from uuid import UUID

from sqlmodel import Session, select, func

from .common import get_group, get_group_set, get_project, get_unit, persisting
from ..core.errors import Conflict
from ..core.permissions import AuthorizationGate, GroupPolicy, GroupSetPolicy, ProjectPolicy
from ..models.group import Group, GroupMembership, GroupSet
from ..models.unit import Project, Tutorial
from ..models.user import User
from ..schemas.group import GroupMemberResponse

logger = logging.getLogger(__name__)


def active_membership(
    session: Session, group_id: UUID, project_id: UUID
) -> Optional[GroupMembership]:
    return session.exec(
        select(GroupMembership).where(
            GroupMembership.group_id == group_id,
            GroupMembership.project_id == project_id,
            GroupMembership.active == True,  # noqa: E712
        )
    ).first()


def membership_history(
    session: Session, group_id: UUID, project_id: UUID
) -> List[GroupMembership]:
    """All membership rows for the pair, oldest first."""
    return list(
        session.exec(
            select(GroupMembership)
            .where(
                GroupMembership.group_id == group_id,
                GroupMembership.project_id == project_id,
            )
            .order_by(GroupMembership.created_at)
        ).all()
    )


def active_projects(session: Session, group: Group) -> List[Project]:
    """Projects currently in the group, in joining order."""
    return list(
        session.exec(
            select(Project)
            .join(GroupMembership, GroupMembership.project_id == Project.id)
            .where(
                GroupMembership.group_id == group.id,
                GroupMembership.active == True,  # noqa: E712
            )
            .order_by(GroupMembership.created_at)
        ).all()
    )


def active_member_count(session: Session, group: Group) -> int:
    return session.exec(
        select(func.count(GroupMembership.id)).where(
            GroupMembership.group_id == group.id,
            GroupMembership.active == True,  # noqa: E712
        )
    ).one()


def check_same_class(
    session: Session, group_set: GroupSet, group: Group, project: Project
) -> None:
    """Reject a project whose tutorial differs from a same-class group's."""
    if group_set.keep_groups_in_same_class and project.tutorial_id != group.tutorial_id:
        tutorial = session.get(Tutorial, group.tutorial_id)
        raise Conflict(
            f"Students from the tutorial '{tutorial.abbreviation}' can only be added to this group."
        )


def append_membership(session: Session, group: Group, project: Project) -> GroupMembership:
    membership = GroupMembership(group_id=group.id, project_id=project.id, active=True)
    session.add(membership)
    session.flush()
    return membership


def member_view(
    session: Session, actor_is_staff: bool, project: Project
) -> GroupMemberResponse:
    """Render a member for the requesting actor; target grades are staff only."""
    student = session.get(User, project.user_id)
    tutorial = session.get(Tutorial, project.tutorial_id) if project.tutorial_id else None
    return GroupMemberResponse(
        project_id=project.id,
        student_id=student.username,
        student_name=student.name,
        tutorial=tutorial.abbreviation if tutorial else None,
        target_grade=project.target_grade if actor_is_staff else None,
    )


def list_members(
    session: Session, actor: User, unit_id: UUID, group_set_id: UUID, group_id: UUID
) -> List[GroupMemberResponse]:
    """Get the members of a group."""
    unit = get_unit(session, unit_id)
    group_set = get_group_set(session, unit, group_set_id)
    group = get_group(session, group_set, group_id)

    gate = AuthorizationGate(session)
    gate.require(
        actor,
        GroupPolicy(group, group_set),
        "get_members",
        "Not authorised to get members of this group",
    )

    is_staff = gate.is_staff(actor, unit.id)
    return [member_view(session, is_staff, p) for p in active_projects(session, group)]


def add_member(
    session: Session,
    actor: User,
    unit_id: UUID,
    group_set_id: UUID,
    group_id: UUID,
    project_id: UUID,
) -> GroupMembership:
    """Add a project to a group as a new active membership."""
    unit = get_unit(session, unit_id)
    group_set = get_group_set(session, unit, group_set_id)
    group = get_group(session, group_set, group_id, lock=True)
    project = get_project(session, unit, project_id)

    gate = AuthorizationGate(session)
    gate.require(
        actor, GroupSetPolicy(group_set), "join_group", "Not authorised to manage this group"
    )
    gate.require(actor, ProjectPolicy(project), "get", "Not authorised to manage this student")

    check_same_class(session, group_set, group, project)

    if active_membership(session, group.id, project.id):
        student = session.get(User, project.user_id)
        raise Conflict(f"{student.name} is already a member of this group")

    logger.info(f"Add member: {actor.username} added project {project.id} to {group.name} in {unit.code}")

    with persisting(session, "Unable to add group member"):
        membership = append_membership(session, group, project)
    session.refresh(membership)
    return membership


def remove_member(
    session: Session,
    actor: User,
    unit_id: UUID,
    group_set_id: UUID,
    group_id: UUID,
    project_id: UUID,
) -> None:
    """Deactivate a project's membership of a group, keeping the row."""
    unit = get_unit(session, unit_id)
    group_set = get_group_set(session, unit, group_set_id)
    group = get_group(session, group_set, group_id, lock=True)
    project = get_project(session, unit, project_id)

    gate = AuthorizationGate(session)
    gate.require(
        actor, GroupPolicy(group, group_set), "manage_group", "Not authorised to manage this group"
    )
    gate.require(actor, ProjectPolicy(project), "get", "Not authorised to manage this student")

    if not membership_history(session, group.id, project.id):
        student = session.get(User, project.user_id)
        raise Conflict(f"{student.name} is not a member of this group")

    membership = active_membership(session, group.id, project.id)
    if membership is None:
        logger.info(f"Remove member: project {project.id} already left {group.name}")
        return

    logger.info(f"Remove member: {actor.username} removed project {project.id} from {group.name} in {unit.code}")

    membership.active = False
    membership.left_at = datetime.utcnow()
    with persisting(session, "Unable to remove group member"):
        session.add(membership)
