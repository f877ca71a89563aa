"""
Plagiarism match link pairs.

A similarity hit between two tasks is stored as two directed links, one from
each side. Pairs are created and deleted together, and each side's cached
``max_pct_similar`` is recomputed in the same transaction.
"""

import logging
from typing import List, Optional, Tuple
from uuid import UUID

from sqlmodel import Session, select, func

from .common import persisting
from ..core import storage
from ..core.errors import ValidationFailed
from ..models.plagiarism_match_link import PlagiarismMatchLink
from ..models.task import Task

logger = logging.getLogger(__name__)


def find_link(session: Session, task: Task, other_task: Task) -> Optional[PlagiarismMatchLink]:
    return session.exec(
        select(PlagiarismMatchLink).where(
            PlagiarismMatchLink.task_id == task.id,
            PlagiarismMatchLink.other_task_id == other_task.id,
        )
    ).first()


def other_party(session: Session, link: PlagiarismMatchLink) -> Optional[PlagiarismMatchLink]:
    """The counterpart link with task and other_task swapped."""
    return session.exec(
        select(PlagiarismMatchLink).where(
            PlagiarismMatchLink.task_id == link.other_task_id,
            PlagiarismMatchLink.other_task_id == link.task_id,
        )
    ).first()


def links_for_task(session: Session, task: Task) -> List[PlagiarismMatchLink]:
    return list(
        session.exec(
            select(PlagiarismMatchLink)
            .where(PlagiarismMatchLink.task_id == task.id)
            .order_by(PlagiarismMatchLink.pct.desc())
        ).all()
    )


def recalculate_max_similar_pct(session: Session, task: Task) -> int:
    """Refresh the task's cached highest non-dismissed similarity."""
    highest = session.exec(
        select(func.max(PlagiarismMatchLink.pct)).where(
            PlagiarismMatchLink.task_id == task.id,
            PlagiarismMatchLink.dismissed == False,  # noqa: E712
        )
    ).one()
    task.max_pct_similar = highest or 0
    session.add(task)
    return task.max_pct_similar


def create_pair(
    session: Session, task: Task, other_task: Task, pct: int, dismissed: bool = False
) -> Tuple[PlagiarismMatchLink, PlagiarismMatchLink]:
    """
    Record a similarity match between two tasks.

    Both directed links are written; when the pair already exists its
    percentage is updated instead.

    Returns:
        tuple: (link from task, link from other_task)
    """
    if task.id == other_task.id:
        raise ValidationFailed("A task cannot be matched against itself")
    if not 0 <= pct <= 100:
        raise ValidationFailed(f"Similarity percentage {pct} is out of range")

    links = []
    for source, target in ((task, other_task), (other_task, task)):
        link = find_link(session, source, target)
        if link is None:
            link = PlagiarismMatchLink(task_id=source.id, other_task_id=target.id)
        link.pct = pct
        link.dismissed = dismissed
        session.add(link)
        links.append(link)

    with persisting(session, "Unable to record plagiarism match"):
        session.flush()
        recalculate_max_similar_pct(session, task)
        recalculate_max_similar_pct(session, other_task)

    for link in links:
        session.refresh(link)
    logger.info(f"Recorded {pct}% match between tasks {task.id} and {other_task.id}")
    return links[0], links[1]


def _evidence_still_shared(session: Session, task: Task, other_task_id: UUID) -> bool:
    """True when a sibling task of the same group submission links to the same task."""
    if task.group_submission_id is None:
        return False

    sibling = session.exec(
        select(PlagiarismMatchLink.id)
        .join(Task, Task.id == PlagiarismMatchLink.task_id)
        .where(
            Task.group_submission_id == task.group_submission_id,
            Task.id != task.id,
            PlagiarismMatchLink.other_task_id == other_task_id,
        )
    ).first()
    return sibling is not None


def delete_pair(session: Session, link: PlagiarismMatchLink) -> None:
    """
    Delete a match link together with its counterpart.

    Both rows go and both tasks' cached similarity is recomputed in one
    commit. Evidence files are removed afterwards unless a sibling task in
    the same group submission still points at the same evidence. Every file
    is attempted; the first storage error is then raised to the caller.
    """
    task_id, other_task_id = link.task_id, link.other_task_id
    pair = [link]
    counterpart = other_party(session, link)
    if counterpart is not None:
        pair.append(counterpart)

    evidence_to_remove = []
    tasks = []
    for item in pair:
        task = session.get(Task, item.task_id)
        tasks.append(task)
        if _evidence_still_shared(session, task, item.other_task_id):
            logger.info(f"Keeping shared plagiarism evidence for task {task.id}")
        else:
            evidence_to_remove.append((task, item.other_task_id))

    other_task = session.get(Task, other_task_id)
    if counterpart is None and other_task is not None:
        tasks.append(other_task)

    with persisting(session, "Unable to delete plagiarism match"):
        for item in pair:
            session.delete(item)
        session.flush()
        for task in tasks:
            recalculate_max_similar_pct(session, task)

    logger.info(f"Deleted plagiarism match between tasks {task_id} and {other_task_id}")

    first_error = None
    for task, target_id in evidence_to_remove:
        try:
            storage.delete_plagiarism_evidence(task, target_id)
        except OSError as e:
            logger.error(f"Failed to delete plagiarism evidence for task {task.id}: {e}")
            if first_error is None:
                first_error = e

    if first_error is not None:
        raise first_error
