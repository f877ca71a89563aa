import logging
from contextlib import contextmanager
from typing import Iterator
from uuid import UUID

from sqlalchemy.exc import IntegrityError
from sqlmodel import Session, select

from ..core.errors import NotFound, ValidationFailed
from ..models.group import Group, GroupSet
from ..models.unit import Project, Tutorial, Unit

logger = logging.getLogger(__name__)


@contextmanager
def persisting(session: Session, message: str) -> Iterator[None]:
    """Commit the enclosed changes, turning store constraint errors into ValidationFailed."""
    try:
        yield
        session.commit()
    except IntegrityError as e:
        session.rollback()
        detail = str(e.orig).splitlines()[0] if e.orig is not None else str(e)
        logger.warning(f"{message}: {detail}")
        raise ValidationFailed(f"{message}: {detail}") from e


def get_unit(session: Session, unit_id: UUID) -> Unit:
    unit = session.get(Unit, unit_id)
    if unit is None:
        raise NotFound("Unable to locate unit")
    return unit


def get_group_set(
    session: Session, unit: Unit, group_set_id: UUID, lock: bool = False
) -> GroupSet:
    """Find a group set of the unit, optionally locking its row."""
    query = select(GroupSet).where(
        GroupSet.id == group_set_id, GroupSet.unit_id == unit.id
    )
    if lock:
        query = query.with_for_update()
    group_set = session.exec(query).first()
    if group_set is None:
        raise NotFound("Unable to locate group set for unit")
    return group_set


def get_group(
    session: Session, group_set: GroupSet, group_id: UUID, lock: bool = False
) -> Group:
    query = select(Group).where(Group.id == group_id, Group.group_set_id == group_set.id)
    if lock:
        query = query.with_for_update()
    group = session.exec(query).first()
    if group is None:
        raise NotFound("Unable to locate group in group set")
    return group


def get_tutorial(session: Session, unit: Unit, tutorial_id: UUID) -> Tutorial:
    tutorial = session.exec(
        select(Tutorial).where(Tutorial.id == tutorial_id, Tutorial.unit_id == unit.id)
    ).first()
    if tutorial is None:
        raise NotFound("Unable to locate tutorial for unit")
    return tutorial


def get_project(session: Session, unit: Unit, project_id: UUID) -> Project:
    project = session.exec(
        select(Project).where(Project.id == project_id, Project.unit_id == unit.id)
    ).first()
    if project is None:
        raise NotFound("Unable to locate project for unit")
    return project
