"""
Role-based authorization for unit-scoped entities.

The ``AuthorizationGate`` works out the actor's unit-wide role, lets the
entity's policy refine that role (for example a student only counts as a
student of a group while they are an active member), and then asks the policy
whether the role may perform the action.
"""

import logging
from enum import Enum
from typing import Dict, FrozenSet, Optional
from uuid import UUID

from sqlmodel import Session, select

from .errors import Forbidden
from ..models.group import Group, GroupMembership, GroupSet
from ..models.unit import Project, Unit, UnitRole, UnitRoleKind
from ..models.user import User

logger = logging.getLogger(__name__)


class Role(str, Enum):
    """Effective role of an actor for a unit."""

    STUDENT = "student"
    TUTOR = "tutor"
    CONVENOR = "convenor"
    ADMIN = "admin"


STAFF_ROLES = frozenset({Role.TUTOR, Role.CONVENOR, Role.ADMIN})


class PermissionPolicy:
    """Base policy: a static role to actions table."""

    permissions: Dict[Role, FrozenSet[str]] = {}

    @property
    def unit_id(self) -> UUID:
        raise NotImplementedError

    def role_for(
        self, session: Session, actor: User, unit_role: Optional[Role]
    ) -> Optional[Role]:
        return unit_role

    def actions_for(self, role: Role) -> FrozenSet[str]:
        # Admins can do whatever a convenor can
        if role == Role.ADMIN:
            role = Role.CONVENOR
        return self.permissions.get(role, frozenset())

    def resolve(self, role: Optional[Role], action: str) -> bool:
        if role is None:
            return False
        return action in self.actions_for(role)


class UnitPolicy(PermissionPolicy):
    permissions = {
        Role.STUDENT: frozenset({"get"}),
        Role.TUTOR: frozenset({"get"}),
        Role.CONVENOR: frozenset({"get", "update"}),
    }

    def __init__(self, unit: Unit):
        self.unit = unit

    @property
    def unit_id(self) -> UUID:
        return self.unit.id


class GroupSetPolicy(PermissionPolicy):
    """Students gain create/join rights from the group set's flags."""

    permissions = {
        Role.STUDENT: frozenset({"get_groups"}),
        Role.TUTOR: frozenset({"get_groups", "create_group", "join_group"}),
        Role.CONVENOR: frozenset({"get_groups", "create_group", "join_group"}),
    }

    def __init__(self, group_set: GroupSet):
        self.group_set = group_set

    @property
    def unit_id(self) -> UUID:
        return self.group_set.unit_id

    def actions_for(self, role: Role) -> FrozenSet[str]:
        actions = super().actions_for(role)
        if role == Role.STUDENT:
            extra = set()
            if self.group_set.allow_students_to_create_groups:
                extra.add("create_group")
            if self.group_set.allow_students_to_manage_groups:
                extra.add("join_group")
            actions = actions | extra
        return actions


class GroupPolicy(PermissionPolicy):
    """Students only hold a role on groups they are active members of."""

    permissions = {
        Role.STUDENT: frozenset({"get_members"}),
        Role.TUTOR: frozenset({"get_members", "manage_group"}),
        Role.CONVENOR: frozenset({"get_members", "manage_group"}),
    }

    def __init__(self, group: Group, group_set: GroupSet):
        self.group = group
        self.group_set = group_set

    @property
    def unit_id(self) -> UUID:
        return self.group_set.unit_id

    def role_for(
        self, session: Session, actor: User, unit_role: Optional[Role]
    ) -> Optional[Role]:
        if unit_role != Role.STUDENT:
            return unit_role

        membership = session.exec(
            select(GroupMembership)
            .join(Project, Project.id == GroupMembership.project_id)
            .where(
                GroupMembership.group_id == self.group.id,
                GroupMembership.active == True,  # noqa: E712
                Project.user_id == actor.id,
            )
        ).first()
        return unit_role if membership else None

    def actions_for(self, role: Role) -> FrozenSet[str]:
        actions = super().actions_for(role)
        if role == Role.STUDENT and self.group_set.allow_students_to_manage_groups:
            actions = actions | {"manage_group"}
        return actions


class ProjectPolicy(PermissionPolicy):
    """Students only see their own project."""

    permissions = {
        Role.STUDENT: frozenset({"get"}),
        Role.TUTOR: frozenset({"get", "delete_plagiarism"}),
        Role.CONVENOR: frozenset({"get", "delete_plagiarism"}),
    }

    def __init__(self, project: Project):
        self.project = project

    @property
    def unit_id(self) -> UUID:
        return self.project.unit_id

    def role_for(
        self, session: Session, actor: User, unit_role: Optional[Role]
    ) -> Optional[Role]:
        if unit_role == Role.STUDENT and self.project.user_id != actor.id:
            return None
        return unit_role


class AuthorizationGate:
    """Answers whether an actor may perform an action on an entity."""

    def __init__(self, session: Session):
        self.session = session

    def unit_role(self, actor: User, unit_id: UUID) -> Optional[Role]:
        if actor.is_superuser:
            return Role.ADMIN

        staff = self.session.exec(
            select(UnitRole).where(
                UnitRole.unit_id == unit_id, UnitRole.user_id == actor.id
            )
        ).first()
        if staff:
            return Role.CONVENOR if staff.role == UnitRoleKind.CONVENOR else Role.TUTOR

        project = self.session.exec(
            select(Project).where(
                Project.unit_id == unit_id,
                Project.user_id == actor.id,
                Project.enrolled == True,  # noqa: E712
            )
        ).first()
        return Role.STUDENT if project else None

    def is_staff(self, actor: User, unit_id: UUID) -> bool:
        return self.unit_role(actor, unit_id) in STAFF_ROLES

    def authorise(self, actor: User, policy: PermissionPolicy, action: str) -> bool:
        role = policy.role_for(self.session, actor, self.unit_role(actor, policy.unit_id))
        allowed = policy.resolve(role, action)
        logger.debug(
            f"authorise {actor.username} {action} on {type(policy).__name__}: "
            f"role={role.value if role else None} allowed={allowed}"
        )
        return allowed

    def require(
        self, actor: User, policy: PermissionPolicy, action: str, message: str
    ) -> None:
        """Raise Forbidden unless the actor may perform the action."""
        if not self.authorise(actor, policy, action):
            raise Forbidden(message)
