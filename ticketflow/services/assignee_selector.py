"""
Assignee selection policy

Greedy least-loaded choice among skill-matched staff. Each ticket is
assigned independently at arrival time.
"""
from typing import Iterable, Optional, Sequence

from ticketflow.models.schemas import ModeratorCandidate, normalize_skills


def select_assignee(
    required_skills: Iterable[str],
    candidates: Sequence[ModeratorCandidate]
) -> Optional[ModeratorCandidate]:
    """
    Pick the least busy candidate sharing a required skill

    Args:
        required_skills: Skills from the analysis; empty means "use the
            admin fallback"
        candidates: Staff with their current workload, in query order

    Returns:
        Chosen candidate, or None when nothing matches. Equal workloads keep
        input order (sorted() is stable).
    """
    wanted = normalize_skills(required_skills)
    if not wanted:
        return None

    matching = [c for c in candidates if c.user.skill_set() & wanted]
    if not matching:
        return None

    return sorted(matching, key=lambda c: c.current_workload)[0]
