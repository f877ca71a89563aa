from typing import Iterable, Optional


def next_group_number(
    existing_numbers: Iterable[Optional[int]], high_water: Optional[int] = None
) -> int:
    """
    Pick the number for a new group in a group set.

    Numbers are allocated as one past the highest number ever handed out, so a
    number freed by a deleted group is never given to a new one.

    Args:
        existing_numbers: Numbers of the groups currently in the set.
        high_water: Highest number previously allocated in the set, if tracked.

    Returns:
        The next group number, starting at 1.
    """
    current = max((n for n in existing_numbers if n is not None), default=0)
    return max(current, high_water or 0) + 1


def default_group_name(number: int) -> str:
    """Name used for a group created without one."""
    return f"Group {number}"
