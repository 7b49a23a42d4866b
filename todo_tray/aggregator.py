"""Merge source outputs into the unified task buckets and section lists."""

from datetime import datetime, timezone
from typing import Iterable, List, Optional, Sequence, Tuple, TypeVar

from .models import Item, SourceKind, TaskList

Section = TypeVar("Section")

_FAR_FUTURE = datetime.max.replace(tzinfo=timezone.utc)


def _sort_key(item: Item):
    # Overdue first, then due ascending, undated last.
    return (
        not item.is_overdue,
        item.due is None,
        item.due or _FAR_FUTURE,
    )


def sort_items(items: Iterable[Item]) -> List[Item]:
    """Stable sort: overdue first, then by due instant, items without a due date last."""
    return sorted(items, key=_sort_key)


def group_items(items: Iterable[Item]) -> TaskList:
    """
    Build the four display buckets from one merged item list.

    Only task-tracker items can land in overdue/today/tomorrow. Every
    issue-tracker item goes to in-progress whatever its due date. Task
    items matching no bucket are dropped.
    """
    overdue: List[Item] = []
    today: List[Item] = []
    tomorrow: List[Item] = []
    in_progress: List[Item] = []

    for item in sort_items(items):
        if item.source is SourceKind.ISSUE_TRACKER:
            in_progress.append(item)
        elif item.is_overdue:
            overdue.append(item)
        elif item.is_today:
            today.append(item)
        elif item.is_tomorrow:
            tomorrow.append(item)

    return TaskList(
        overdue=tuple(overdue),
        today=tuple(today),
        tomorrow=tuple(tomorrow),
        in_progress=tuple(in_progress),
    )


def non_empty(sections: Iterable[Section]) -> Tuple[Section, ...]:
    """Drop sections that have nothing to show."""
    return tuple(s for s in sections if s.entries)


def merge_single_section(existing: Sequence[Section], updated: Section) -> Tuple[Section, ...]:
    """
    Replace one account's section, keeping the order of the others.

    The updated section takes the old one's position. A new account is
    appended. An empty section is dropped entirely.
    """
    previous_index: Optional[int] = None
    remaining: List[Section] = []
    for section in existing:
        if section.name == updated.name:
            if previous_index is None:
                previous_index = len(remaining)
            continue
        remaining.append(section)

    if updated.entries:
        if previous_index is None:
            remaining.append(updated)
        else:
            remaining.insert(min(previous_index, len(remaining)), updated)
    return tuple(remaining)


def find_item(tasks: TaskList, item_id: str) -> Optional[Item]:
    for item in tasks.all_items():
        if item.id == item_id:
            return item
    return None
