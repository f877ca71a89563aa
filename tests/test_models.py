"""
Unit tests for SQLModel database models.
"""

import pytest
from sqlalchemy.exc import IntegrityError

from app.models import (
    Group,
    GroupMembership,
    GroupSet,
    PlagiarismMatchLink,
    Project,
    Task,
    Tutorial,
    Unit,
    User,
)


@pytest.fixture
def unit_with_group(db_session):
    """Create a unit, tutorial, project and group."""
    unit = Unit(code="SIT101", name="Test Unit")
    user = User(username="student", email="student@example.com", first_name="Sam", last_name="Student")
    db_session.add_all([unit, user])
    db_session.commit()

    tutorial = Tutorial(unit_id=unit.id, abbreviation="LA1")
    db_session.add(tutorial)
    db_session.commit()

    project = Project(unit_id=unit.id, user_id=user.id, tutorial_id=tutorial.id)
    group_set = GroupSet(unit_id=unit.id, name="Test Set")
    db_session.add_all([project, group_set])
    db_session.commit()

    group = Group(group_set_id=group_set.id, tutorial_id=tutorial.id, name="Test Group", number=1)
    db_session.add(group)
    db_session.commit()
    db_session.refresh(group)

    return unit, tutorial, project, group_set, group


def test_user_creation(db_session):
    """Test creating a user."""
    user = User(
        username="testuser",
        email="test@example.com",
        first_name="Test",
        last_name="User",
    )

    db_session.add(user)
    db_session.commit()
    db_session.refresh(user)

    assert user.id is not None
    assert user.name == "Test User"
    assert user.is_active is True
    assert user.is_superuser is False
    assert user.created_at is not None


def test_group_set_defaults(db_session, unit_with_group):
    """Test group set flags default off."""
    _, _, _, group_set, _ = unit_with_group

    assert group_set.allow_students_to_create_groups is False
    assert group_set.allow_students_to_manage_groups is False
    assert group_set.keep_groups_in_same_class is False
    assert group_set.last_group_number == 0


def test_group_name_unique_per_set(db_session, unit_with_group):
    """Test duplicate group names are rejected by the store."""
    _, tutorial, _, group_set, _ = unit_with_group

    db_session.add(Group(group_set_id=group_set.id, tutorial_id=tutorial.id, name="Test Group", number=2))
    with pytest.raises(IntegrityError):
        db_session.commit()


def test_one_active_membership(db_session, unit_with_group):
    """Test only one active membership per group and project."""
    _, _, project, _, group = unit_with_group

    old = GroupMembership(group_id=group.id, project_id=project.id, active=False)
    current = GroupMembership(group_id=group.id, project_id=project.id)
    db_session.add_all([old, current])
    db_session.commit()

    assert current.active is True

    db_session.add(GroupMembership(group_id=group.id, project_id=project.id))
    with pytest.raises(IntegrityError):
        db_session.commit()


def test_group_with_members_cannot_be_dropped_alone(db_session, unit_with_group):
    """Test foreign keys are enforced."""
    _, _, project, _, group = unit_with_group

    db_session.add(GroupMembership(group_id=group.id, project_id=project.id))
    db_session.commit()

    db_session.delete(group)
    with pytest.raises(IntegrityError):
        db_session.commit()


def test_task_and_match_link(db_session, unit_with_group):
    """Test creating tasks and a match link."""
    _, _, project, _, _ = unit_with_group

    task = Task(project_id=project.id, definition="1.1P")
    other = Task(project_id=project.id, definition="1.2P")
    db_session.add_all([task, other])
    db_session.commit()

    link = PlagiarismMatchLink(task_id=task.id, other_task_id=other.id, pct=42)
    db_session.add(link)
    db_session.commit()
    db_session.refresh(link)

    assert link.dismissed is False
    assert task.max_pct_similar == 0
    assert task.is_group_task is False
