"""Schedule propagation through ``depends_on`` links between task assignments.

The dependency graph is rebuilt explicitly on every call (predecessor ->
dependents, in input order) and checked for cycles before anything moves.
A dependent starts at the exact instant its predecessor ends and its end
date is recomputed in working days. Every function returns new assignment
objects; inputs are never mutated.
"""
from __future__ import annotations

import logging
import uuid
from collections import defaultdict, deque
from dataclasses import dataclass, field
from datetime import datetime, time
from typing import Any, Iterable, Sequence

from ..schemas import CompanyCalendar, DependencyIssue, Task, TaskAssignment
from .business_days import add_working_days
from .calendar import normalize_holidays

logger = logging.getLogger("fab_planner.dependencies")


class DependencyCycleError(ValueError):
    def __init__(self, cycle: list[str]):
        self.cycle = cycle
        super().__init__("dependency cycle: " + " -> ".join(cycle + cycle[:1]))


@dataclass
class DependencyGraph:
    ids: list[str]
    dependents: dict[str, list[str]] = field(default_factory=dict)
    predecessors: dict[str, list[str]] = field(default_factory=dict)
    # (assignment_id, missing predecessor id)
    dangling: list[tuple[str, str]] = field(default_factory=list)


def build_dependency_graph(assignments: Sequence[TaskAssignment]) -> DependencyGraph:
    ids = [a.id for a in assignments]
    known = set(ids)
    dependents: dict[str, list[str]] = defaultdict(list)
    predecessors: dict[str, list[str]] = defaultdict(list)
    dangling: list[tuple[str, str]] = []
    for a in assignments:
        for dep in a.depends_on or []:
            if dep not in known:
                logger.debug("assignment %s depends on unknown %s; treating it as independent", a.id, dep)
                dangling.append((a.id, dep))
                continue
            if a.id in dependents[dep]:
                continue
            dependents[dep].append(a.id)
            predecessors[a.id].append(dep)
    return DependencyGraph(ids=ids, dependents=dict(dependents), predecessors=dict(predecessors), dangling=dangling)


def find_cycles(graph: DependencyGraph) -> list[list[str]]:
    """All distinct elementary cycles met by a DFS, each rotated to start at its smallest id."""
    WHITE, GRAY, BLACK = 0, 1, 2
    color = {n: WHITE for n in graph.ids}
    path: list[str] = []
    found: set[tuple[str, ...]] = set()
    cycles: list[list[str]] = []

    def visit(node: str) -> None:
        color[node] = GRAY
        path.append(node)
        for nxt in graph.dependents.get(node, ()):
            if color[nxt] == GRAY:
                cyc = path[path.index(nxt):]
                k = cyc.index(min(cyc))
                key = tuple(cyc[k:] + cyc[:k])
                if key not in found:
                    found.add(key)
                    cycles.append(list(key))
            elif color[nxt] == WHITE:
                visit(nxt)
        path.pop()
        color[node] = BLACK

    for n in graph.ids:
        if color[n] == WHITE:
            visit(n)
    return cycles


def _reachable(graph: DependencyGraph, roots: Iterable[str]) -> set[str]:
    seen: set[str] = set()
    queue = deque(roots)
    while queue:
        n = queue.popleft()
        if n in seen:
            continue
        seen.add(n)
        queue.extend(graph.dependents.get(n, ()))
    return seen


def topological_order(graph: DependencyGraph, roots: Iterable[str] | None = None) -> list[str]:
    """Kahn order of the (sub)graph reachable from roots; raises DependencyCycleError on a cycle."""
    nodes = _reachable(graph, roots) if roots is not None else set(graph.ids)
    indeg = {n: 0 for n in nodes}
    for n in nodes:
        for d in graph.dependents.get(n, ()):
            if d in indeg:
                indeg[d] += 1
    queue = deque(n for n in graph.ids if n in nodes and indeg[n] == 0)
    order: list[str] = []
    while queue:
        n = queue.popleft()
        order.append(n)
        for d in graph.dependents.get(n, ()):
            if d not in indeg:
                continue
            indeg[d] -= 1
            if indeg[d] == 0:
                queue.append(d)
    if len(order) < len(nodes):
        leftover = set(nodes) - set(order)
        for cyc in find_cycles(graph):
            if leftover.intersection(cyc):
                raise DependencyCycleError(cyc)
        raise DependencyCycleError(sorted(leftover))
    return order


def _copy_all(assignments: Sequence[TaskAssignment]) -> list[TaskAssignment]:
    return [a.model_copy(deep=True) for a in assignments]


def _reschedule(a: TaskAssignment, start: datetime, calendar, holidays, **extra: Any) -> TaskAssignment:
    return a.model_copy(update={
        "start_date": start,
        "end_date": add_working_days(start, a.duration, calendar, holidays),
        **extra,
    })


def update_dependent_dates(
    assignments: Sequence[TaskAssignment],
    changed_id: str,
    calendar: CompanyCalendar | None = None,
    holidays: Iterable[Any] | None = None,
) -> list[TaskAssignment]:
    updated = _copy_all(assignments)
    index = {a.id: i for i, a in enumerate(updated)}
    if changed_id not in index:
        logger.warning("update_dependent_dates: unknown assignment %s, nothing to propagate", changed_id)
        return updated

    graph = build_dependency_graph(updated)
    topological_order(graph, roots=[changed_id])

    cal = calendar if calendar is not None else CompanyCalendar.default()
    hs = normalize_holidays(holidays)

    # depth-first; a node reached again through another path is left as first computed
    visited = {changed_id}
    stack = [(changed_id, iter(graph.dependents.get(changed_id, ())))]
    while stack:
        pred_id, it = stack[-1]
        dep_id = next(it, None)
        if dep_id is None:
            stack.pop()
            continue
        if dep_id in visited:
            logger.debug("assignment %s already rescheduled in this pass, skipping path via %s", dep_id, pred_id)
            continue
        visited.add(dep_id)
        pred = updated[index[pred_id]]
        updated[index[dep_id]] = _reschedule(updated[index[dep_id]], pred.end_date, cal, hs)
        stack.append((dep_id, iter(graph.dependents.get(dep_id, ()))))

    logger.debug("propagated %s: %d assignment(s) rescheduled", changed_id, len(visited) - 1)
    return updated


def toggle_dependency(
    assignments: Sequence[TaskAssignment],
    assignment_id: str,
    enabled: bool,
    predecessor_id: str | None = None,
    calendar: CompanyCalendar | None = None,
    holidays: Iterable[Any] | None = None,
) -> list[TaskAssignment]:
    """Link an assignment to a predecessor (default: the previous one in list order) or unlink it.

    Unlinking keeps the dates as they are. Enabling on the first assignment
    without a ``predecessor_id`` leaves it unchanged.
    """
    updated = _copy_all(assignments)
    index = {a.id: i for i, a in enumerate(updated)}
    if assignment_id not in index:
        raise ValueError(f"unknown assignment {assignment_id!r}")
    i = index[assignment_id]

    if not enabled:
        updated[i] = updated[i].model_copy(update={"depends_on": []})
        return updated

    if predecessor_id is None:
        if i == 0:
            logger.info("assignment %s has no previous assignment to depend on; left unchanged", assignment_id)
            return updated
        predecessor_id = updated[i - 1].id
    if predecessor_id not in index:
        raise ValueError(f"unknown predecessor {predecessor_id!r}")
    if predecessor_id == assignment_id:
        raise DependencyCycleError([assignment_id])

    updated[i] = updated[i].model_copy(update={"depends_on": [predecessor_id]})
    for cyc in find_cycles(build_dependency_graph(updated)):
        if assignment_id in cyc:
            raise DependencyCycleError(cyc)

    cal = calendar if calendar is not None else CompanyCalendar.default()
    pred = updated[index[predecessor_id]]
    updated[i] = _reschedule(updated[i], pred.end_date, cal, holidays)
    return update_dependent_dates(updated, assignment_id, cal, holidays)


def update_assignment(
    assignments: Sequence[TaskAssignment],
    assignment_id: str,
    *,
    start_date: datetime | None = None,
    duration: float | None = None,
    progress: float | None = None,
    calendar: CompanyCalendar | None = None,
    holidays: Iterable[Any] | None = None,
) -> list[TaskAssignment]:
    updated = _copy_all(assignments)
    index = {a.id: i for i, a in enumerate(updated)}
    if assignment_id not in index:
        raise ValueError(f"unknown assignment {assignment_id!r}")
    i = index[assignment_id]
    a = updated[i]
    cal = calendar if calendar is not None else CompanyCalendar.default()

    if duration is not None:
        if not duration > 0:
            raise ValueError(f"duration must be > 0, got {duration!r}")
        a = a.model_copy(update={"duration": float(duration)})
    if progress is not None:
        a = a.model_copy(update={"progress": max(0.0, min(100.0, float(progress)))})
    if start_date is not None:
        start = datetime.combine(start_date.date() if isinstance(start_date, datetime) else start_date, time.min)
        a = _reschedule(a, start, cal, holidays)
    elif duration is not None:
        a = _reschedule(a, a.start_date, cal, holidays)

    updated[i] = a
    return update_dependent_dates(updated, assignment_id, cal, holidays)


def append_assignment(
    assignments: Sequence[TaskAssignment],
    order_id: str,
    task_id: str,
    order_start: datetime,
    calendar: CompanyCalendar | None = None,
    holidays: Iterable[Any] | None = None,
    assignment_id: str | None = None,
) -> list[TaskAssignment]:
    """Add a one-day assignment after the last one (or at the order start), chained to it."""
    updated = _copy_all(assignments)
    last = updated[-1] if updated else None
    start = last.end_date if last is not None else order_start
    new = TaskAssignment(
        id=assignment_id or uuid.uuid4().hex,
        order_id=order_id,
        task_id=task_id,
        duration=1,
        start_date=start,
        end_date=add_working_days(start, 1, calendar, holidays),
        depends_on=[last.id] if last is not None else [],
    )
    updated.append(new)
    return updated


def remove_assignment(assignments: Sequence[TaskAssignment], assignment_id: str) -> list[TaskAssignment]:
    return [
        a.model_copy(update={"depends_on": [d for d in a.depends_on if d != assignment_id]}, deep=True)
        for a in assignments
        if a.id != assignment_id
    ]


def sort_by_task_order(assignments: Sequence[TaskAssignment], tasks: Sequence[Task]) -> list[TaskAssignment]:
    order = {t.id: t.order for t in tasks}
    return sorted(assignments, key=lambda a: order.get(a.task_id, 0))


def validate_assignments(assignments: Sequence[TaskAssignment]) -> list[DependencyIssue]:
    """Edit-time checks; reports problems instead of raising."""
    issues: list[DependencyIssue] = []
    for a in assignments:
        if not a.duration or a.duration <= 0:
            issues.append(DependencyIssue(
                assignment_id=a.id, kind="invalid_duration", message=f"duration must be > 0, got {a.duration}",
            ))
    graph = build_dependency_graph(assignments)
    for aid, missing in graph.dangling:
        issues.append(DependencyIssue(
            assignment_id=aid, kind="missing_dependency", message=f"depends on unknown assignment {missing}",
        ))
    for cyc in find_cycles(graph):
        if len(cyc) == 1:
            issues.append(DependencyIssue(
                assignment_id=cyc[0], kind="self_dependency", message="assignment depends on itself",
            ))
        else:
            issues.append(DependencyIssue(
                assignment_id=cyc[0], kind="cycle", message="dependency cycle: " + " -> ".join(cyc + cyc[:1]),
            ))
    return issues
