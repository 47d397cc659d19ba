from __future__ import annotations

import logging
from collections.abc import Iterable, Iterator
from typing import cast

from networkx import DiGraph, NetworkXNoCycle, find_cycle, restricted_view
from nr.stream import Stream

from kiln.common import not_none
from kiln.core.errors import ConfigurationError, CyclicDependencyError
from kiln.core.executor import Graph
from kiln.core.task import GroupTask, Task, TaskStatus

logger = logging.getLogger(__name__)


class TaskGraph(Graph):
    """The task graph represents the tasks required to reach a set of goal tasks as a directed acyclic graph. An
    edge `a -> b` means that `a` must complete successfully before `b` can be executed."""

    def __init__(self, goals: Iterable[Task] = ()) -> None:
        # Nodes have the form {'data': Task}.
        self._digraph = DiGraph()

        # Keep track of task execution results.
        self._results: dict[str, TaskStatus] = {}

        # All tasks that have a successful, skipped or up-to-date status are stored here.
        self._ok_tasks: set[str] = set()

        self.populate(goals)

    # Low level internal API

    def _get_task(self, name: str) -> Task | None:
        data = self._digraph.nodes.get(name)
        if data is None:
            return None
        return cast(Task, data["data"])

    def _add_task(self, task: Task) -> None:
        existing = self._get_task(task.name)
        if existing is not None:
            if existing is not task:
                raise ConfigurationError(f"two different tasks are named `{task.name}`")
            return
        self._digraph.add_node(task.name, data=task)
        for dependency in task.get_relationships():
            self._add_task(dependency)
            self._digraph.add_edge(dependency.name, task.name)

    def _check_acyclic(self) -> None:
        try:
            cycle = find_cycle(self._digraph)
        except NetworkXNoCycle:
            return
        raise CyclicDependencyError([u for u, _ in cycle] + [cycle[0][0]])

    def _get_ready_graph(self) -> DiGraph:
        """Returns a view of the graph that hides all tasks with an ok status (successful, skipped, up to date)."""

        return restricted_view(self._digraph, self._ok_tasks, [])

    # Public API

    def populate(self, goals: Iterable[Task]) -> None:
        """Add the *goals* and all of their transitive dependencies to the graph.

        :raise CyclicDependencyError: If the tasks depend on each other in a cycle.
        """

        for task in goals:
            self._add_task(task)
        self._check_acyclic()

    def get_predecessors(self, task: Task) -> list[Task]:
        """Returns the tasks that *task* depends on directly."""

        return [self.get_task(name) for name in self._digraph.predecessors(task.name)]

    def get_status(self, task: Task) -> TaskStatus | None:
        """Return the status of a task."""

        return self._results.get(task.name)

    def tasks(
        self,
        goals: bool = False,
        failed: bool = False,
        not_executed: bool = False,
    ) -> Iterator[Task]:
        """Returns the tasks in the graph in arbitrary order.

        :param goals: Return only goal tasks (i.e. leaf nodes).
        :param failed: Return only failed tasks.
        :param not_executed: Return only not executed tasks (i.e. downstream of failed tasks)"""

        tasks = (self.get_task(name) for name in self._digraph)
        if goals:
            tasks = (t for t in tasks if self._digraph.out_degree(t.name) == 0)
        if failed:
            tasks = (t for t in tasks if t.name in self._results and self._results[t.name].is_failed())
        if not_executed:
            tasks = (
                t for t in tasks if t.name not in self._results or self._results[t.name].is_pending()
            )
        return tasks

    # Graph

    def ready(self) -> list[Task]:
        """Returns all tasks that are ready to be executed. This can be used to constantly query the graph for new
        available tasks as the status of tasks in the graph is updated with :meth:`set_status`. An empty list is
        returned if no tasks are ready. Note that tasks which were handed out but have no status yet are returned
        again, it is up to the caller to keep track of tasks that are currently running."""

        ready_graph = self._get_ready_graph()
        root_set = (
            node for node in ready_graph.nodes if ready_graph.in_degree(node) == 0 and node not in self._results
        )
        tasks = [self.get_task(name) for name in root_set]
        if not tasks:
            return []

        # Groups do not execute anything, we can mark them as skipped right away.
        result, groups = map(lambda x: list(x), Stream(tasks).bipartition(lambda t: isinstance(t, GroupTask)))
        for group in groups:
            self.set_status(group, TaskStatus.skipped())
        if not result and groups:
            result = self.ready()
        return result

    def get_task(self, name: str) -> Task:
        return not_none(self._get_task(name), lambda: f"no task named {name!r}")

    def set_status(self, task: Task, status: TaskStatus) -> None:
        """Sets the status of a task, marking it as executed."""

        if task.name in self._results:
            raise RuntimeError(f"already have a status for task `{task.name}`")
        self._results[task.name] = status
        if status.is_ok():
            self._ok_tasks.add(task.name)

    def is_complete(self) -> bool:
        """Returns `True` if, an only if, all tasks in the graph have a non-failure result."""

        return set(self._digraph.nodes).issubset(self._ok_tasks)
