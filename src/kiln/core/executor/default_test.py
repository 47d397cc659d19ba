import threading
from collections.abc import Generator

from _pytest.capture import CaptureFixture, CaptureResult

from kiln.core.errors import KilnError
from kiln.core.executor.default import (
    TASKS_SKIPPED_DUE_TO_FAILING_DEPENDENCIES_TITLE,
    DefaultGraphExecutor,
    DefaultPrintingExecutorObserver,
    DefaultTaskExecutor,
    NullExecutorObserver,
)
from kiln.core.graph import TaskGraph
from kiln.core.task import Task, TaskStatus


class MyTask(Task):
    """
    Fake task
    """

    def execute(self) -> None:
        print("Hello")


class MyFailingTask(Task):
    """
    Fake failing task
    """

    def execute(self) -> None:
        raise RuntimeError("Wow this is failing")


class MyUpToDateTask(Task):
    def prepare(self) -> TaskStatus:
        return TaskStatus.up_to_date()

    def execute(self) -> None:
        raise AssertionError("must not be executed")


class MyBarrierTask(Task):
    def __init__(self, name: str, barrier: threading.Barrier) -> None:
        super().__init__(name)
        self.barrier = barrier

    def execute(self) -> None:
        self.barrier.wait()


def execute_print_test(graph: TaskGraph) -> None:
    """
    Basic common execution to get the final printed result
    """
    default_task_executor = DefaultTaskExecutor()
    default_printing_executor_observer = DefaultPrintingExecutorObserver()
    default_executor = DefaultGraphExecutor(default_task_executor)
    default_executor.execute_graph(graph, default_printing_executor_observer)


def trim_printed_result(captured: CaptureResult[str]) -> str:
    """
    Retrieving the skipped test printed part
    """
    print_output = str(captured.out)
    title_index_end = print_output.find(TASKS_SKIPPED_DUE_TO_FAILING_DEPENDENCIES_TITLE) + len(
        TASKS_SKIPPED_DUE_TO_FAILING_DEPENDENCIES_TITLE
    )
    result = print_output[(title_index_end + 1) :]
    return result


def test__DefaultExecutor__print_correct_failures_with_dependencies(
    capsys: Generator[CaptureFixture[str], None, None]
) -> None:
    """This test tests if when a task failed, successor tasks with depedencies will be printed as failed.

    ```
    A -> B -> C -> D
    ```

    If B fails, C, D should be printed.
    """
    task_a = MyTask("fake_task_a")
    task_b = MyFailingTask("fake_task_b")
    task_c = MyTask("fake_task_c")
    task_d = MyTask("fake_task_d")

    task_b.depends_on(task_a)
    task_c.depends_on(task_b)
    task_d.depends_on(task_c)

    graph = TaskGraph([task_d])
    assert set(graph.tasks()) == {task_a, task_b, task_c, task_d}
    execute_print_test(graph)

    captured = capsys.readouterr()  # type: ignore[attr-defined]
    assert trim_printed_result(captured) == "\n  fake_task_c\n  fake_task_d\n\n"
    assert graph.get_status(task_a) == TaskStatus.succeeded()
    assert graph.get_status(task_b) == TaskStatus.failed("unhandled exception: Wow this is failing")
    assert not graph.is_complete()


def test__DefaultExecutor__up_to_date_tasks_are_not_executed() -> None:
    task_a = MyUpToDateTask("a")
    task_b = MyTask("b")
    task_b.depends_on(task_a)

    graph = TaskGraph([task_b])
    DefaultGraphExecutor().execute_graph(graph, NullExecutorObserver())

    assert graph.is_complete()
    assert graph.get_status(task_a) == TaskStatus.up_to_date()
    assert graph.get_status(task_b) == TaskStatus.succeeded()


def test__DefaultExecutor__known_errors_become_failed_status_messages() -> None:
    class MyKilnErrorTask(Task):
        def execute(self) -> None:
            raise KilnError("the compiler is on fire")

    task = MyKilnErrorTask("a")
    graph = TaskGraph([task])
    DefaultGraphExecutor().execute_graph(graph, NullExecutorObserver())
    assert graph.get_status(task) == TaskStatus.failed("the compiler is on fire")


def test__DefaultExecutor__executes_independent_tasks_in_parallel() -> None:
    barrier = threading.Barrier(3, timeout=10)
    tasks = [MyBarrierTask(name, barrier) for name in ("a", "b", "c")]

    graph = TaskGraph(tasks)
    DefaultGraphExecutor(jobs=3).execute_graph(graph, NullExecutorObserver())

    assert graph.is_complete()


def test__DefaultExecutor__stops_dispatching_after_first_failure() -> None:
    """
    ```
    A (fails)
    B -> C
    ```

    With a single worker, A and B are dispatched together and A runs first. C is never started.
    """

    task_a = MyFailingTask("a")
    task_b = MyTask("b")
    task_c = MyTask("c")
    task_c.depends_on(task_b)

    graph = TaskGraph([task_a, task_c])
    DefaultGraphExecutor(jobs=1).execute_graph(graph, NullExecutorObserver())

    assert graph.get_status(task_a) is not None and graph.get_status(task_a).is_failed()  # type: ignore[union-attr]
    assert graph.get_status(task_c) is None
    assert not graph.is_complete()
