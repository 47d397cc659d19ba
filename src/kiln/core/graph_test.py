import pytest

from kiln.core.errors import ConfigurationError, CyclicDependencyError
from kiln.core.graph import TaskGraph
from kiln.core.task import GroupTask, Task, TaskStatus


class _Task(Task):
    def execute(self) -> TaskStatus | None:
        return None


def test__TaskGraph__populate() -> None:
    task_a = _Task("a")
    task_b = _Task("b")
    group = GroupTask("g", [task_a, task_b])

    graph = TaskGraph([group])

    assert set(graph.tasks()) == {group, task_a, task_b}
    assert set(graph.tasks(goals=True)) == {group}
    assert set(graph.get_predecessors(group)) == {task_a, task_b}


def test__TaskGraph__ready_on_successful_completion() -> None:
    """Tests if :meth:`TaskGraph.ready` and :meth:`TaskGraph.is_complete` work as expected.

    ```
    A -----> B -----> C
    ```
    """

    task_a = _Task("a")
    task_b = _Task("b")
    task_c = _Task("c")

    task_c.depends_on(task_b)
    task_b.depends_on(task_a)

    graph = TaskGraph([task_c])

    assert set(graph.tasks()) == {task_c, task_b, task_a}

    # Complete tasks one by one.
    remainder = [task_a, task_b, task_c]
    while remainder:
        task = remainder.pop(0)
        assert not graph.is_complete()
        assert list(graph.ready()) == [task]
        graph.set_status(task, TaskStatus.succeeded())

    assert graph.is_complete()
    assert list(graph.ready()) == []


def test__TaskGraph__ready_on_failure() -> None:
    """This test tests if the task delivers the correct ready tasks if a task in the graph fails.

    ```
    A        B
    |        |
    v        v
    C -----> D
    ```

    If A succeeds but B fails, C would still be executable, but D stays dormant.
    """

    task_a = _Task("a")
    task_b = _Task("b")
    task_c = _Task("c")
    task_d = _Task("d")

    task_d.depends_on(task_b)
    task_d.depends_on(task_c)
    task_c.depends_on(task_a)

    graph = TaskGraph([task_d])
    assert set(graph.tasks()) == {task_d, task_b, task_c, task_a}
    assert set(graph.ready()) == {task_a, task_b}

    # After B fails we can still run A.
    graph.set_status(task_b, TaskStatus.failed())
    assert list(graph.ready()) == [task_a]

    # After A is successful we can still run C.
    graph.set_status(task_a, TaskStatus.succeeded())
    assert list(graph.ready()) == [task_c]

    # D cannot continue because B has failed.
    graph.set_status(task_c, TaskStatus.succeeded())
    assert list(graph.ready()) == []
    assert not graph.is_complete()
    assert list(graph.tasks(failed=True)) == [task_b]
    assert list(graph.tasks(not_executed=True)) == [task_d]


def test__TaskGraph__ready__skips_groups() -> None:
    task_a = _Task("a")
    group = GroupTask("g", [task_a])
    task_b = _Task("b")
    task_b.depends_on(group)

    graph = TaskGraph([task_b])
    assert graph.ready() == [task_a]
    graph.set_status(task_a, TaskStatus.up_to_date())
    assert graph.ready() == [task_b]
    assert graph.get_status(group) == TaskStatus.skipped()


def test__TaskGraph__up_to_date_counts_as_success() -> None:
    task_a = _Task("a")
    graph = TaskGraph([task_a])
    graph.set_status(task_a, TaskStatus.up_to_date())
    assert graph.is_complete()


def test__TaskGraph__set_status_twice_raises() -> None:
    task_a = _Task("a")
    graph = TaskGraph([task_a])
    graph.set_status(task_a, TaskStatus.succeeded())
    with pytest.raises(RuntimeError):
        graph.set_status(task_a, TaskStatus.succeeded())


def test__TaskGraph__rejects_cycles() -> None:
    task_a = _Task("a")
    task_b = _Task("b")
    task_a.depends_on(task_b)
    task_b.depends_on(task_a)

    with pytest.raises(CyclicDependencyError) as excinfo:
        TaskGraph([task_a])
    assert sorted(excinfo.value.cycle[:-1]) == ["a", "b"]
    assert excinfo.value.cycle[0] == excinfo.value.cycle[-1]


def test__TaskGraph__rejects_different_tasks_with_the_same_name() -> None:
    with pytest.raises(ConfigurationError):
        TaskGraph([_Task("a"), _Task("a")])
