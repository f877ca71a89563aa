"""
Tests for CSV export and import of group memberships.
"""

import pytest
from sqlmodel import select

from app.core.errors import Forbidden, ValidationFailed
from app.models import Group, GroupMembership, Project, User
from app.schemas.group import GroupCreate
from app.services import group_csv, groups, memberships


def import_csv(session, actor, roster, group_set, text):
    return group_csv.import_groups_csv(
        session, actor, roster.unit.id, group_set.id, text.encode("utf-8")
    )


def groups_in(session, group_set):
    return session.exec(
        select(Group).where(Group.group_set_id == group_set.id).order_by(Group.number)
    ).all()


class TestExport:
    def test_export_active_members(self, db_session, roster, group_set):
        alpha = groups.create_group(
            db_session, roster.tutor, roster.unit.id, group_set.id,
            GroupCreate(name="Alpha", tutorial_id=roster.t1.id),
        )
        beta = groups.create_group(
            db_session, roster.tutor, roster.unit.id, group_set.id,
            GroupCreate(name="Beta", tutorial_id=roster.t2.id),
        )
        groups.create_group(
            db_session, roster.tutor, roster.unit.id, group_set.id,
            GroupCreate(name="Empty", tutorial_id=roster.t1.id),
        )
        for group, project in (
            (alpha, roster.bob_project),
            (alpha, roster.alice_project),
            (beta, roster.carol_project),
        ):
            memberships.add_member(
                db_session, roster.tutor, roster.unit.id, group_set.id, group.id, project.id
            )
        memberships.remove_member(
            db_session, roster.tutor, roster.unit.id, group_set.id, beta.id, roster.carol_project.id
        )

        data = group_csv.export_groups_csv(db_session, roster.convenor, roster.unit.id, group_set.id)

        assert data.decode("utf-8").splitlines() == [
            "group_name,group_number,username,tutorial",
            "Alpha,1,alice,T1",
            "Alpha,1,bob,T1",
        ]

    def test_export_requires_unit_update(self, db_session, roster, group_set):
        with pytest.raises(Forbidden):
            group_csv.export_groups_csv(db_session, roster.tutor, roster.unit.id, group_set.id)


class TestImport:
    def test_creates_group_once_for_two_rows(self, db_session, roster, group_set):
        report = import_csv(
            db_session,
            roster.convenor,
            roster,
            group_set,
            "group_name,username,tutorial\nAlpha,alice,T1\nAlpha,bob,T1\n",
        )

        assert [r.row for r in report.success] == [1, 2]
        assert report.success[0].message == "Created new group. Added to group."
        assert report.success[1].message == "Added to group."
        assert report.errors == []

        created = groups_in(db_session, group_set)
        assert len(created) == 1
        assert created[0].number == 1
        assert created[0].tutorial_id == roster.t1.id
        assert memberships.active_member_count(db_session, created[0]) == 2

    def test_per_row_errors(self, db_session, roster, group_set):
        report = import_csv(
            db_session,
            roster.convenor,
            roster,
            group_set,
            "group_name,username,tutorial\n"
            "Alpha,alice,T1\n"
            "Alpha,nobody,T1\n"
            "Beta,outsider,T1\n"
            "Gamma,bob,T9\n"
            "Delta,carol,\n"
            "Epsilon,carol,T2\n",
        )

        assert [r.row for r in report.success] == [1, 6]
        assert {r.row: r.message for r in report.errors} == {
            2: "Unable to find user nobody",
            3: "Student outsider not found in unit",
            4: "Tutorial T9 not found",
            5: "Tutorial required to create group Delta",
        }
        assert [g.name for g in groups_in(db_session, group_set)] == ["Alpha", "Epsilon"]

    def test_ignored_rows(self, db_session, roster, group_set):
        import_csv(
            db_session, roster.convenor, roster, group_set,
            "group_name,username,tutorial\nAlpha,alice,T1\n",
        )

        report = import_csv(
            db_session,
            roster.convenor,
            roster,
            group_set,
            "group_name,username,tutorial\nAlpha,ALICE,T1\n,bob,T1\nBeta,,T1\n",
        )

        assert report.success == []
        assert {r.row: r.message for r in report.ignored} == {
            1: "Already member of group",
            2: "Skipping row with missing group name",
            3: "Skipping row with missing username",
        }

    def test_same_class_rule_applies(self, db_session, roster, same_class_set):
        report = import_csv(
            db_session,
            roster.convenor,
            roster,
            same_class_set,
            "group_name,username,tutorial\nAlpha,alice,T1\nAlpha,carol,T2\n",
        )

        assert [r.row for r in report.success] == [1]
        assert report.errors[0].row == 2
        assert "can only be added to this group" in report.errors[0].message

    def test_failed_row_does_not_leave_a_group(self, db_session, roster, same_class_set):
        # carol is in T2 but the new group is created for T1
        report = import_csv(
            db_session,
            roster.convenor,
            roster,
            same_class_set,
            "group_name,username,tutorial\nAlpha,carol,T1\n",
        )

        assert len(report.errors) == 1
        assert groups_in(db_session, same_class_set) == []

    def test_rejoin_after_leaving(self, db_session, roster, group_set):
        import_csv(
            db_session, roster.convenor, roster, group_set,
            "group_name,username,tutorial\nAlpha,alice,T1\n",
        )
        alpha = groups_in(db_session, group_set)[0]
        memberships.remove_member(
            db_session, roster.convenor, roster.unit.id, group_set.id, alpha.id, roster.alice_project.id
        )

        report = import_csv(
            db_session, roster.convenor, roster, group_set,
            "group_name,username,tutorial\nAlpha,alice,T1\n",
        )

        assert [r.message for r in report.success] == ["Added to group."]
        rows = db_session.exec(
            select(GroupMembership).where(GroupMembership.group_id == alpha.id)
        ).all()
        assert len(rows) == 2

    def test_unparseable_file(self, db_session, roster, group_set):
        with pytest.raises(ValidationFailed):
            import_csv(db_session, roster.convenor, roster, group_set, "name,email\nx,y\n")

    def test_requires_unit_update(self, db_session, roster, group_set):
        with pytest.raises(Forbidden):
            import_csv(
                db_session, roster.tutor, roster, group_set,
                "group_name,username,tutorial\nAlpha,alice,T1\n",
            )


def test_exported_file_imports_back(db_session, roster, group_set, same_class_set):
    user = User(username="JSmith", email="jsmith@example.com", first_name="Jo", last_name="Smith")
    db_session.add(user)
    db_session.flush()
    db_session.add(Project(unit_id=roster.unit.id, user_id=user.id, tutorial_id=roster.t1.id))
    db_session.commit()

    import_csv(
        db_session, roster.convenor, roster, group_set,
        "group_name,username,tutorial\nA,JSmith,T1\n",
    )
    data = group_csv.export_groups_csv(db_session, roster.convenor, roster.unit.id, group_set.id)
    assert data.decode("utf-8").splitlines()[1] == "A,1,JSmith,T1"

    # Load the same file into a fresh set
    report = group_csv.import_groups_csv(
        db_session, roster.convenor, roster.unit.id, same_class_set.id, data
    )

    assert report.errors == []
    assert [r.message for r in report.success] == ["Created new group. Added to group."]
    assert [g.name for g in groups_in(db_session, same_class_set)] == ["A"]
