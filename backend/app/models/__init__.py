"""
SQLModel models for the group roster service.

This module exports all database models so that ``SQLModel.metadata`` knows
every table before ``create_all`` runs.
"""

from .user import User
from .unit import Unit, UnitRole, UnitRoleKind, Tutorial, Project
from .group import GroupSet, Group, GroupMembership
from .task import GroupSubmission, Task
from .plagiarism_match_link import PlagiarismMatchLink

__all__ = [
    "User",
    "Unit",
    "UnitRole",
    "UnitRoleKind",
    "Tutorial",
    "Project",
    "GroupSet",
    "Group",
    "GroupMembership",
    "GroupSubmission",
    "Task",
    "PlagiarismMatchLink",
]
