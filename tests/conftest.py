"""
Shared fixtures: an in-memory SQLite store and a small unit roster.

The roster has one unit with two tutorials (T1, T2), a convenor, a tutor, an
administrator, three enrolled students (alice and bob in T1, carol in T2) and
an outsider with no role in the unit.
"""

from types import SimpleNamespace

import pytest
from sqlalchemy.pool import StaticPool
from sqlmodel import Session, SQLModel, create_engine

from app.core.database import configure_sqlite_engine
from app.models import (
    GroupSet,
    Project,
    Tutorial,
    Unit,
    UnitRole,
    UnitRoleKind,
    User,
)


@pytest.fixture
def engine():
    """Create an in-memory SQLite engine for testing."""
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    configure_sqlite_engine(engine)
    SQLModel.metadata.create_all(engine)
    return engine


@pytest.fixture
def db_session(engine):
    """Create a database session for testing."""
    with Session(engine) as session:
        yield session


def make_user(session, username, **kwargs):
    user = User(
        username=username,
        email=f"{username}@example.com",
        first_name=username.capitalize(),
        last_name="Tester",
        **kwargs,
    )
    session.add(user)
    return user


@pytest.fixture
def roster(db_session):
    unit = Unit(code="COS10001", name="Introduction to Programming")
    other_unit = Unit(code="COS20007", name="Object Oriented Programming")
    db_session.add(unit)
    db_session.add(other_unit)

    convenor = make_user(db_session, "convenor")
    tutor = make_user(db_session, "tutor")
    admin = make_user(db_session, "admin", is_superuser=True)
    alice = make_user(db_session, "alice")
    bob = make_user(db_session, "bob")
    carol = make_user(db_session, "carol")
    outsider = make_user(db_session, "outsider")
    db_session.flush()

    db_session.add(UnitRole(unit_id=unit.id, user_id=convenor.id, role=UnitRoleKind.CONVENOR))
    db_session.add(UnitRole(unit_id=unit.id, user_id=tutor.id, role=UnitRoleKind.TUTOR))

    t1 = Tutorial(unit_id=unit.id, abbreviation="T1", tutor_id=tutor.id)
    t2 = Tutorial(unit_id=unit.id, abbreviation="T2", tutor_id=tutor.id)
    other_tutorial = Tutorial(unit_id=other_unit.id, abbreviation="T1")
    db_session.add_all([t1, t2, other_tutorial])
    db_session.flush()

    alice_project = Project(unit_id=unit.id, user_id=alice.id, tutorial_id=t1.id, target_grade=3)
    bob_project = Project(unit_id=unit.id, user_id=bob.id, tutorial_id=t1.id, target_grade=1)
    carol_project = Project(unit_id=unit.id, user_id=carol.id, tutorial_id=t2.id, target_grade=2)
    db_session.add_all([alice_project, bob_project, carol_project])
    db_session.commit()

    return SimpleNamespace(
        unit=unit,
        other_unit=other_unit,
        convenor=convenor,
        tutor=tutor,
        admin=admin,
        alice=alice,
        bob=bob,
        carol=carol,
        outsider=outsider,
        t1=t1,
        t2=t2,
        other_tutorial=other_tutorial,
        alice_project=alice_project,
        bob_project=bob_project,
        carol_project=carol_project,
    )


def make_group_set(session, unit, name="Assignment Groups", **flags):
    group_set = GroupSet(unit_id=unit.id, name=name, **flags)
    session.add(group_set)
    session.commit()
    session.refresh(group_set)
    return group_set


@pytest.fixture
def group_set(db_session, roster):
    return make_group_set(db_session, roster.unit)


@pytest.fixture
def same_class_set(db_session, roster):
    return make_group_set(
        db_session, roster.unit, name="Lab Groups", keep_groups_in_same_class=True
    )


@pytest.fixture
def student_set(db_session, roster):
    """A group set where students create and manage their own groups."""
    return make_group_set(
        db_session,
        roster.unit,
        name="Project Teams",
        allow_students_to_create_groups=True,
        allow_students_to_manage_groups=True,
    )
