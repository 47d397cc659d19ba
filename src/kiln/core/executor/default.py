from __future__ import annotations

import abc
import logging
import threading
import time
from collections.abc import Callable
from concurrent.futures import FIRST_COMPLETED, Future, ThreadPoolExecutor, wait

from kiln.core.errors import KilnError
from kiln.core.executor import Graph, GraphExecutor, GraphExecutorObserver
from kiln.core.task import GroupTask, Task, TaskStatus

TASKS_SKIPPED_DUE_TO_FAILING_DEPENDENCIES_TITLE = "Tasks that were not executed due to failing dependencies"
logger = logging.getLogger(__name__)


class TaskExecutor(abc.ABC):
    @abc.abstractmethod
    def prepare_task(self, task: Task) -> TaskStatus: ...

    @abc.abstractmethod
    def execute_task(self, task: Task) -> TaskStatus: ...


class DefaultTaskExecutor(TaskExecutor):
    """The most straight forward task executor."""

    def _call(self, task: Task, func: Callable[[], TaskStatus | None], default: TaskStatus) -> TaskStatus:
        try:
            status = func()
            if status is None:
                return default
            elif not isinstance(status, TaskStatus):
                return TaskStatus.failed(f"bad status: {status!r}")  # type: ignore[unreachable]
            return status
        except KeyboardInterrupt:
            return TaskStatus.interrupted()
        except KilnError as exc:
            task.logger.debug("task failed", exc_info=exc)
            return TaskStatus.failed(str(exc))
        except Exception as exc:
            task.logger.error("unhandled exception in task %s", task.name, exc_info=exc)
            return TaskStatus.failed(f"unhandled exception: {exc}")

    def prepare_task(self, task: Task) -> TaskStatus:
        return self._call(task, task.prepare, TaskStatus.pending())

    def execute_task(self, task: Task) -> TaskStatus:
        return self._call(task, task.execute, TaskStatus.succeeded())


class DefaultGraphExecutor(GraphExecutor):
    """Executes the tasks of a graph on a bounded pool of worker threads. Tasks are dispatched as soon as all of
    their dependencies completed successfully. After the first task fails, no further tasks are dispatched, but the
    tasks that are already running are allowed to finish."""

    def __init__(self, task_executor: TaskExecutor | None = None, jobs: int = 1) -> None:
        assert jobs >= 1, jobs
        self._task_executor = task_executor or DefaultTaskExecutor()
        self._jobs = jobs

    def execute_graph(self, graph: Graph, observer: GraphExecutorObserver) -> None:
        running: dict[Future[TaskStatus], Task] = {}
        running_names: set[str] = set()
        stopped = False

        def task_done(task: Task, status: TaskStatus) -> None:
            nonlocal stopped
            graph.set_status(task, status)
            observer.after_execute_task(task, status)
            if status.is_not_ok():
                stopped = True

        def dispatch(pool: ThreadPoolExecutor) -> None:
            while not stopped:
                tasks = [t for t in graph.ready() if t.name not in running_names]
                if not tasks:
                    return
                for task in tasks:
                    if stopped:
                        break
                    observer.before_prepare_task(task)
                    status = self._task_executor.prepare_task(task)
                    observer.after_prepare_task(task, status)
                    if status.is_pending():
                        observer.before_execute_task(task, status)
                        running[pool.submit(self._task_executor.execute_task, task)] = task
                        running_names.add(task.name)
                    else:
                        task_done(task, status)

        observer.before_execute_graph(graph)
        try:
            with ThreadPoolExecutor(max_workers=self._jobs, thread_name_prefix="kiln-worker") as pool:
                dispatch(pool)
                while running:
                    done, _ = wait(running, return_when=FIRST_COMPLETED)
                    for future in done:
                        task = running.pop(future)
                        running_names.discard(task.name)
                        task_done(task, future.result())
                    dispatch(pool)
        finally:
            observer.after_execute_graph(graph)


class DefaultPrintingExecutorObserver(GraphExecutorObserver):
    """The default printing executor that has some parameters for customization."""

    def __init__(
        self,
        execute_prefix: str = ">",
        status_to_text: Callable[[TaskStatus], str] | None = None,
        format_header: Callable[[str], str] | None = None,
        format_duration: Callable[[str], str] | None = None,
        report_up_to_date: bool = False,
    ) -> None:
        self.execute_prefix = execute_prefix
        self.status_to_text = status_to_text or self.default_status_to_text
        self.format_header = format_header or str
        self.format_duration = format_duration or str
        self.report_up_to_date = report_up_to_date
        self._lock = threading.Lock()
        self._status: dict[str, TaskStatus] = {}
        self._started: dict[str, float] = {}
        self._duration: dict[str, float] = {}

    def _ask_report_task_status(self, task: Task, status: TaskStatus) -> bool:
        if isinstance(task, GroupTask) and status.is_skipped():
            return False
        return self.report_up_to_date or not status.is_up_to_date()

    def before_execute_graph(self, graph: Graph) -> None:
        print(flush=True)
        print(self.format_header("Start build"), flush=True)
        print(flush=True)

    def after_execute_graph(self, graph: Graph) -> None:
        print(flush=True)
        print(self.format_header("Build summary"), flush=True)
        print(flush=True)

        up_to_date = 0
        for task_name, status in self._status.items():
            task = graph.get_task(task_name)
            if status.is_up_to_date():
                up_to_date += 1
            if self._ask_report_task_status(task, status):
                print(
                    " " * (len(self.execute_prefix) + 1) + task_name,
                    self.status_to_text(status),
                    self.format_duration(f"[{self._duration[task_name]:.3f}s]") if task_name in self._duration else "",
                )
        if up_to_date:
            print(" " * (len(self.execute_prefix) + 1) + f"({up_to_date} task(s) up to date)")

        not_executed_tasks = [t for t in graph.tasks(not_executed=True) if not isinstance(t, GroupTask)]
        if len(not_executed_tasks) != 0:
            print(flush=True)
            print(self.format_header(TASKS_SKIPPED_DUE_TO_FAILING_DEPENDENCIES_TITLE), flush=True)
            print(flush=True)
            for task in sorted(not_executed_tasks, key=lambda t: t.name):
                print(" " * (len(self.execute_prefix) + 1) + task.name)
        print(flush=True)

    def default_status_to_text(self, status: TaskStatus) -> str:
        if status.message:
            return f"{status.type.name} ({status.message})"
        else:
            return status.type.name

    def before_execute_task(self, task: Task, status: TaskStatus) -> None:
        print(self.execute_prefix, task.name, self.status_to_text(status), flush=True)
        with self._lock:
            self._started[task.name] = time.perf_counter()

    def after_execute_task(self, task: Task, status: TaskStatus) -> None:
        if self._ask_report_task_status(task, status):
            print(self.execute_prefix, task.name, self.status_to_text(status), flush=True)
        with self._lock:
            self._status[task.name] = status
            if task.name in self._started:
                self._duration[task.name] = time.perf_counter() - self._started[task.name]


class NullExecutorObserver(GraphExecutorObserver):
    """An observer that reports nothing."""
