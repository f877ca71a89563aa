import logging
from pathlib import Path
from uuid import UUID

from fastapi import UploadFile, HTTPException, status

from .config import settings
from ..models.task import Task

logger = logging.getLogger(__name__)


def get_file_extension(filename: str) -> str:
    """Get file extension in lowercase."""
    return Path(filename).suffix.lower()


def validate_csv_upload(file: UploadFile) -> None:
    """Validate an uploaded CSV before it is parsed."""
    if not file.filename:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST, detail="No filename provided"
        )

    extension = get_file_extension(file.filename)
    if extension != ".csv":
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"File type {extension or 'unknown'} not allowed. Upload a .csv file",
        )

    content_type = (file.content_type or "").split(";")[0].strip().lower()
    if content_type and content_type not in settings.ALLOWED_CSV_CONTENT_TYPES:
        raise HTTPException(
            status_code=status.HTTP_415_UNSUPPORTED_MEDIA_TYPE,
            detail=f"Content type {content_type} is not a CSV type",
        )


async def read_csv_upload(file: UploadFile) -> bytes:
    """
    Validate and read an uploaded CSV into memory.

    Returns:
        bytes: the raw file content
    """
    validate_csv_upload(file)

    data = await file.read()
    if len(data) > settings.MAX_CSV_SIZE:
        raise HTTPException(
            status_code=status.HTTP_413_REQUEST_ENTITY_TOO_LARGE,
            detail=f"File too large. Maximum size: {settings.MAX_CSV_SIZE / (1024*1024):.1f}MB",
        )

    if b"\x00" in data:
        raise HTTPException(
            status_code=status.HTTP_415_UNSUPPORTED_MEDIA_TYPE,
            detail="File does not look like text CSV",
        )

    return data


def plagiarism_dir(task: Task) -> Path:
    """Evidence directory for a task; group tasks share their submission's."""
    if task.group_submission_id is not None:
        key = f"group-{task.group_submission_id}"
    else:
        key = f"task-{task.id}"
    return Path(settings.UPLOAD_DIR) / settings.PLAGIARISM_DIR_NAME / key


def plagiarism_evidence_path(task: Task, other_task_id: UUID) -> Path:
    return plagiarism_dir(task) / f"link-{other_task_id}.html"


def save_plagiarism_evidence(task: Task, other_task_id: UUID, html: str) -> Path:
    """Store the generated evidence page for a match link."""
    path = plagiarism_evidence_path(task, other_task_id)
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(html, encoding="utf-8")
    return path


def delete_plagiarism_evidence(task: Task, other_task_id: UUID) -> bool:
    """
    Remove the evidence page for a match link.

    Returns:
        True if a file was removed, False if there was nothing to remove.
    """
    path = plagiarism_evidence_path(task, other_task_id)
    if not path.exists():
        return False

    path.unlink()
    logger.info(f"Deleted plagiarism evidence {path}")
    return True
