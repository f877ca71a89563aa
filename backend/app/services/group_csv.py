"""
Bulk exchange of group memberships as CSV.

Import is reconciling and row-independent: each row runs in its own
SAVEPOINT, so a failing row is rolled back on its own and reported while the
rows before and after it still apply. The whole upload commits once.
"""

import logging
from typing import Any, Dict, Tuple
from uuid import UUID

from sqlalchemy.exc import SQLAlchemyError
from sqlmodel import Session, func, select

from roster_core import parse_group_rows, render_group_rows

from .common import get_group_set, get_unit, persisting
from .groups import allocate_group
from .memberships import active_membership, append_membership, check_same_class
from ..core.errors import DomainError, NotFound, ValidationFailed
from ..core.permissions import AuthorizationGate, UnitPolicy
from ..models.group import Group, GroupMembership, GroupSet
from ..models.unit import Project, Tutorial, Unit
from ..models.user import User
from ..schemas.group import GroupImportReport, ImportRowResult

logger = logging.getLogger(__name__)


def export_groups_csv(
    session: Session, actor: User, unit_id: UUID, group_set_id: UUID
) -> bytes:
    """Render the active members of every group in the set, one row each."""
    unit = get_unit(session, unit_id)
    group_set = get_group_set(session, unit, group_set_id)

    AuthorizationGate(session).require(
        actor,
        UnitPolicy(unit),
        "update",
        "Not authorised to download csv of groups for this unit",
    )

    results = session.exec(
        select(Group.name, Group.number, User.username, Tutorial.abbreviation)
        .join(GroupMembership, GroupMembership.group_id == Group.id)
        .join(Project, Project.id == GroupMembership.project_id)
        .join(User, User.id == Project.user_id)
        .join(Tutorial, Tutorial.id == Group.tutorial_id)
        .where(
            Group.group_set_id == group_set.id,
            GroupMembership.active == True,  # noqa: E712
        )
        .order_by(Group.number, User.username)
    ).all()

    rows = [
        {
            "group_name": name,
            "group_number": number,
            "username": username,
            "tutorial": abbreviation,
        }
        for name, number, username, abbreviation in results
    ]

    logger.info(f"Export groups: {actor.username} exported {len(rows)} rows of {group_set.name} in {unit.code}")
    return render_group_rows(rows)


def _import_row(
    session: Session, unit: Unit, group_set: GroupSet, row: Dict[str, Any]
) -> Tuple[str, str]:
    """Apply one row. Returns the report bucket and message."""
    username = row["username"]
    # Usernames arrive lower-cased from the codec
    user = session.exec(
        select(User).where(func.lower(User.username) == username)
    ).first()
    if user is None:
        raise NotFound(f"Unable to find user {username}")

    project = session.exec(
        select(Project).where(Project.unit_id == unit.id, Project.user_id == user.id)
    ).first()
    if project is None:
        raise NotFound(f"Student {username} not found in unit")

    change = ""
    group = session.exec(
        select(Group).where(
            Group.group_set_id == group_set.id, Group.name == row["group_name"]
        )
    ).first()
    if group is None:
        abbreviation = row["tutorial"]
        if not abbreviation:
            raise ValidationFailed(f"Tutorial required to create group {row['group_name']}")
        tutorial = session.exec(
            select(Tutorial).where(
                Tutorial.unit_id == unit.id, Tutorial.abbreviation == abbreviation
            )
        ).first()
        if tutorial is None:
            raise NotFound(f"Tutorial {abbreviation} not found")

        group = allocate_group(session, group_set, tutorial, row["group_name"])
        change = "Created new group. "

    if active_membership(session, group.id, project.id):
        return "ignored", f"{change}Already member of group"

    check_same_class(session, group_set, group, project)
    append_membership(session, group, project)
    return "success", f"{change}Added to group."


def import_groups_csv(
    session: Session, actor: User, unit_id: UUID, group_set_id: UUID, data: bytes
) -> GroupImportReport:
    """
    Reconcile a CSV of group memberships into the group set.

    Rows without a username or group name are ignored. Each remaining row
    resolves or creates its group and ensures the student is an active
    member. Failures are collected per row.

    Raises:
        ValidationFailed: if the file cannot be parsed at all.
    """
    unit = get_unit(session, unit_id)
    group_set = get_group_set(session, unit, group_set_id, lock=True)

    AuthorizationGate(session).require(
        actor,
        UnitPolicy(unit),
        "update",
        "Not authorised to upload csv of groups for this unit",
    )

    try:
        rows = parse_group_rows(data)
    except ValueError as e:
        raise ValidationFailed(str(e)) from e

    logger.info(f"Import groups: {actor.username} uploading {len(rows)} rows to {group_set.name} in {unit.code}")

    report = GroupImportReport()
    for row in rows:
        index = row["row"]
        if not row["username"]:
            report.ignored.append(
                ImportRowResult(row=index, message="Skipping row with missing username")
            )
            continue
        if not row["group_name"]:
            report.ignored.append(
                ImportRowResult(row=index, message="Skipping row with missing group name")
            )
            continue

        try:
            with session.begin_nested():
                bucket, message = _import_row(session, unit, group_set, row)
        except DomainError as e:
            logger.warning(f"Import groups: row {index} failed: {e.message}")
            report.errors.append(ImportRowResult(row=index, message=e.message))
            continue
        except SQLAlchemyError as e:
            logger.warning(f"Import groups: row {index} failed: {e}")
            report.errors.append(ImportRowResult(row=index, message=str(e).splitlines()[0]))
            continue

        getattr(report, bucket).append(ImportRowResult(row=index, message=message))

    with persisting(session, "Unable to import groups"):
        session.add(group_set)

    logger.info(
        f"Import groups: {len(report.success)} added, {len(report.ignored)} ignored, "
        f"{len(report.errors)} errors"
    )
    return report
