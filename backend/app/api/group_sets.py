from typing import List
from uuid import UUID

from fastapi import APIRouter, Depends, File, Response, UploadFile, status
from sqlmodel import Session

from ..core.database import get_db
from ..core.deps import get_current_active_user
from ..core.permissions import AuthorizationGate
from ..core.storage import read_csv_upload
from ..models.user import User
from ..schemas.group import (
    GroupCreate,
    GroupImportReport,
    GroupMemberAdd,
    GroupMemberResponse,
    GroupResponse,
    GroupUpdate,
)
from ..schemas.group_set import GroupSetCreate, GroupSetResponse, GroupSetUpdate
from ..services import group_csv, group_sets, groups, memberships
from ..services.common import get_project, get_unit

router = APIRouter()


# ------------------------------------------------------------------------
# Group Sets
# ------------------------------------------------------------------------


@router.get("/{unit_id}/group_sets", response_model=List[GroupSetResponse])
async def list_group_sets(
    unit_id: UUID,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_active_user),
):
    """Get the group sets of a unit."""
    return group_sets.list_group_sets(db, current_user, unit_id)


@router.post(
    "/{unit_id}/group_sets",
    response_model=GroupSetResponse,
    status_code=status.HTTP_201_CREATED,
)
async def create_group_set(
    unit_id: UUID,
    group_set_data: GroupSetCreate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_active_user),
):
    """Add a new group set to the given unit."""
    return group_sets.create_group_set(db, current_user, unit_id, group_set_data)


@router.put("/{unit_id}/group_sets/{group_set_id}", response_model=GroupSetResponse)
async def update_group_set(
    unit_id: UUID,
    group_set_id: UUID,
    group_set_data: GroupSetUpdate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_active_user),
):
    """Edit the given group set."""
    return group_sets.update_group_set(db, current_user, unit_id, group_set_id, group_set_data)


@router.delete(
    "/{unit_id}/group_sets/{group_set_id}", status_code=status.HTTP_204_NO_CONTENT
)
async def delete_group_set(
    unit_id: UUID,
    group_set_id: UUID,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_active_user),
):
    """Delete a group set."""
    group_sets.delete_group_set(db, current_user, unit_id, group_set_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


# ------------------------------------------------------------------------
# Groups
# ------------------------------------------------------------------------


@router.get(
    "/{unit_id}/group_sets/{group_set_id}/groups", response_model=List[GroupResponse]
)
async def list_groups(
    unit_id: UUID,
    group_set_id: UUID,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_active_user),
):
    """Get the groups in a group set."""
    return group_sets.list_groups(db, current_user, unit_id, group_set_id)


@router.get("/{unit_id}/group_sets/{group_set_id}/groups/csv")
async def download_groups_csv(
    unit_id: UUID,
    group_set_id: UUID,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_active_user),
):
    """Download a CSV of groups in a group set."""
    data = group_csv.export_groups_csv(db, current_user, unit_id, group_set_id)
    unit = get_unit(db, unit_id)
    return Response(
        content=data,
        media_type="application/octet-stream",
        headers={"Content-Disposition": f"attachment; filename={unit.code}-groups.csv"},
    )


@router.post(
    "/{unit_id}/group_sets/{group_set_id}/groups/csv", response_model=GroupImportReport
)
async def upload_groups_csv(
    unit_id: UUID,
    group_set_id: UUID,
    file: UploadFile = File(...),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_active_user),
):
    """Upload a CSV for groups in a group set."""
    # check the upload looks like CSV before parsing
    data = await read_csv_upload(file)
    return group_csv.import_groups_csv(db, current_user, unit_id, group_set_id, data)


@router.post(
    "/{unit_id}/group_sets/{group_set_id}/groups",
    response_model=GroupResponse,
    status_code=status.HTTP_201_CREATED,
)
async def create_group(
    unit_id: UUID,
    group_set_id: UUID,
    group_data: GroupCreate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_active_user),
):
    """Add a new group to the given unit's group set."""
    return groups.create_group(db, current_user, unit_id, group_set_id, group_data)


@router.put(
    "/{unit_id}/group_sets/{group_set_id}/groups/{group_id}", response_model=GroupResponse
)
async def update_group(
    unit_id: UUID,
    group_set_id: UUID,
    group_id: UUID,
    group_data: GroupUpdate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_active_user),
):
    """Edit the given group."""
    return groups.update_group(db, current_user, unit_id, group_set_id, group_id, group_data)


@router.delete(
    "/{unit_id}/group_sets/{group_set_id}/groups/{group_id}",
    status_code=status.HTTP_204_NO_CONTENT,
)
async def delete_group(
    unit_id: UUID,
    group_set_id: UUID,
    group_id: UUID,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_active_user),
):
    """Delete a group."""
    groups.delete_group(db, current_user, unit_id, group_set_id, group_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


# ------------------------------------------------------------------------
# Members
# ------------------------------------------------------------------------


@router.get(
    "/{unit_id}/group_sets/{group_set_id}/groups/{group_id}/members",
    response_model=List[GroupMemberResponse],
)
async def list_group_members(
    unit_id: UUID,
    group_set_id: UUID,
    group_id: UUID,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_active_user),
):
    """Get the members of a group."""
    return memberships.list_members(db, current_user, unit_id, group_set_id, group_id)


@router.post(
    "/{unit_id}/group_sets/{group_set_id}/groups/{group_id}/members",
    response_model=GroupMemberResponse,
    status_code=status.HTTP_201_CREATED,
)
async def add_group_member(
    unit_id: UUID,
    group_set_id: UUID,
    group_id: UUID,
    member_data: GroupMemberAdd,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_active_user),
):
    """Add a group member."""
    memberships.add_member(
        db, current_user, unit_id, group_set_id, group_id, member_data.project_id
    )

    unit = get_unit(db, unit_id)
    project = get_project(db, unit, member_data.project_id)
    is_staff = AuthorizationGate(db).is_staff(current_user, unit.id)
    return memberships.member_view(db, is_staff, project)


@router.delete(
    "/{unit_id}/group_sets/{group_set_id}/groups/{group_id}/members/{project_id}",
    status_code=status.HTTP_204_NO_CONTENT,
)
async def remove_group_member(
    unit_id: UUID,
    group_set_id: UUID,
    group_id: UUID,
    project_id: UUID,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_active_user),
):
    """Remove a group member."""
    memberships.remove_member(db, current_user, unit_id, group_set_id, group_id, project_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
