# timeruler/grouping.py
from __future__ import annotations

from typing import Dict, List, Mapping, Optional, Sequence, Tuple

from .model import BLOCK_TYPES, UNGROUPED, AreaGroup, GroupEntry, HeadingGroup, Task, TaskNode


def _position(t: Mapping) -> int:
    p = t.get("position")
    if isinstance(p, bool):
        return 0
    if isinstance(p, int):
        return p
    if isinstance(p, dict):
        # {"start": {"line": n}} as exported by note indexers
        start = p.get("start")
        if isinstance(start, dict) and isinstance(start.get("line"), int):
            return int(start["line"])
    return 0


def real_node(task: Task) -> TaskNode:
    children = task.get("children") or ()
    return TaskNode(
        kind="real",
        id=str(task.get("id")),
        type=str(task.get("type") or "task"),
        area=str(task.get("area") or ""),
        heading=task.get("heading") or None,
        path=str(task.get("path") or ""),
        position=_position(task),
        scheduled=task.get("scheduled") or None,
        children=tuple(children),
        task=task,
    )


def synthetic_parent(parent_id: str, children: Sequence[Task], tasks: Mapping[str, Task]) -> TaskNode:
    """Virtual header for children whose parent is outside the current list."""
    parent = tasks.get(parent_id)
    source = parent if parent is not None else children[0]
    return TaskNode(
        kind="synthetic",
        id=parent_id,
        type="parent",
        area=str(source.get("area") or ""),
        heading=source.get("heading") or None,
        path=str(source.get("path") or ""),
        position=_position(source),
        scheduled=(parent.get("scheduled") or None) if parent is not None else None,
        children=tuple(str(c.get("id")) for c in children),
        task=parent,
    )


def nest_by_parent(
    items: Sequence[Task],
    block_type: str,
    tasks: Optional[Mapping[str, Task]] = None,
) -> List[TaskNode]:
    if block_type not in BLOCK_TYPES:
        raise ValueError(f"unknown block type: {block_type!r}")
    if block_type == "child":
        return [real_node(t) for t in items]

    tasks = tasks or {}
    by_parent: Dict[Optional[str], List[Task]] = {}
    for t in items:
        parent = t.get("parent_id")
        by_parent.setdefault(parent if isinstance(parent, str) and parent else None, []).append(t)

    item_ids = {t.get("id") for t in items}
    out: List[TaskNode] = []
    for parent_id, children in by_parent.items():
        if parent_id is None:
            out.extend(real_node(t) for t in children)
        elif parent_id in item_ids:
            # Rendered under the parent's own row.
            continue
        else:
            out.append(synthetic_parent(parent_id, children, tasks))
    return out


def render_mode(node: TaskNode, scheduled: Optional[str]) -> str:
    """Return "link" for parents/links and for items shown ahead of their own slot."""
    if node.type in ("parent", "link"):
        return "link"
    if node.scheduled and (not scheduled or node.scheduled > scheduled):
        return "link"
    return "task"


def _group_headings(nodes: List[TaskNode], scheduled: Optional[str]) -> Tuple[HeadingGroup, ...]:
    by_heading: Dict[str, List[TaskNode]] = {}
    for n in nodes:
        by_heading.setdefault(n.heading or UNGROUPED, []).append(n)

    ordered = sorted(
        by_heading.items(),
        key=lambda kv: (kv[0] == UNGROUPED, kv[1][0].path, kv[1][0].position),
    )
    out: List[HeadingGroup] = []
    for name, group in ordered:
        path = group[0].path if name == UNGROUPED else f"{group[0].path}#{name}"
        entries = tuple(GroupEntry(node=n, render=render_mode(n, scheduled)) for n in group)
        out.append(HeadingGroup(name=name, path=path, entries=entries))
    return tuple(out)


def group_block(
    items: Sequence[Task],
    block_type: str = "default",
    *,
    tasks: Optional[Mapping[str, Task]] = None,
    scheduled: Optional[str] = None,
) -> Tuple[AreaGroup, ...]:
    """Nest a flat task list into area -> heading groups.

    `tasks` is the full table used to fill in virtual parents; `scheduled` is
    the nominal time of the block being rendered.
    """
    nodes = nest_by_parent(items, block_type, tasks)
    nodes = sorted(nodes, key=lambda n: n.position)

    by_area: Dict[str, List[TaskNode]] = {}
    for n in nodes:
        by_area.setdefault(n.area, []).append(n)

    return tuple(
        AreaGroup(name=area, headings=_group_headings(group, scheduled))
        for area, group in sorted(by_area.items(), key=lambda kv: kv[0])
    )


__all__ = [
    "real_node",
    "synthetic_parent",
    "nest_by_parent",
    "render_mode",
    "group_block",
]
