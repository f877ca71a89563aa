from typing import List
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Response, status
from sqlmodel import Session, select

from ..core.database import get_db
from ..core.deps import get_current_active_user
from ..core.permissions import AuthorizationGate, ProjectPolicy
from ..models.plagiarism_match_link import PlagiarismMatchLink
from ..models.task import Task
from ..models.unit import Project
from ..models.user import User
from ..schemas.match_link import MatchLinkResponse
from ..services import match_links

router = APIRouter()


def _get_task_project(db: Session, task_id: UUID) -> tuple[Task, Project]:
    task = db.get(Task, task_id)
    if not task:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Task not found")
    return task, db.get(Project, task.project_id)


@router.get("/{task_id}/similarities", response_model=List[MatchLinkResponse])
async def list_similarities(
    task_id: UUID,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_active_user),
):
    """List the plagiarism matches recorded against a task."""
    task, project = _get_task_project(db, task_id)

    AuthorizationGate(db).require(
        current_user, ProjectPolicy(project), "get", "Not authorised to view this task"
    )

    return match_links.links_for_task(db, task)


@router.delete("/{task_id}/similarities/{link_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_similarity(
    task_id: UUID,
    link_id: UUID,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_active_user),
):
    """Delete a plagiarism match and its counterpart."""
    task, project = _get_task_project(db, task_id)

    link = db.exec(
        select(PlagiarismMatchLink).where(
            PlagiarismMatchLink.id == link_id, PlagiarismMatchLink.task_id == task.id
        )
    ).first()
    if not link:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND, detail="Match link not found"
        )

    AuthorizationGate(db).require(
        current_user,
        ProjectPolicy(project),
        "delete_plagiarism",
        "Not authorised to delete plagiarism matches for this task",
    )

    match_links.delete_pair(db, link)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
