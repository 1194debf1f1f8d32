from __future__ import annotations

from typing import Iterable, List

from dayshift.models import BackendTask, BlockKind, Flexibility, ScheduleBlock

DEFAULT_START_MINUTE = 9 * 60


def kind_for_task(task: BackendTask) -> BlockKind:
    tags = (task.tags or "").lower()
    if task.priority.strip().lower() == "high":
        return BlockKind.FOCUS
    if "class" in tags:
        return BlockKind.EVENT
    if "break" in tags:
        return BlockKind.BREAK
    return BlockKind.TASK


def block_from_task(task: BackendTask) -> ScheduleBlock:
    """Turn a backend task into a block. Events (classes) are fixed, the rest flexible."""
    if task.start_minute is not None:
        start = task.start_minute
    elif task.due_at is not None:
        start = task.due_at.hour * 60 + task.due_at.minute
    else:
        start = DEFAULT_START_MINUTE

    kind = kind_for_task(task)
    fields = {
        "title": task.title,
        "kind": kind,
        "flexibility": Flexibility.FIXED if kind == BlockKind.EVENT else Flexibility.FLEXIBLE,
        "start_minute": start,
        "duration_minutes": task.duration_minutes,
    }
    # keep the backend id so re-fetches map to the same block
    if task.id is not None:
        fields["id"] = str(task.id)
    return ScheduleBlock(**fields)


def blocks_from_tasks(tasks: Iterable[BackendTask]) -> List[ScheduleBlock]:
    return [block_from_task(t) for t in tasks]
