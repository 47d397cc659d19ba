""" This module provides the :class:`Task` class which represents a unit of work in the build graph. Every task
knows the tasks it depends on and decides in :meth:`Task.prepare` whether it needs to be executed at all. """

from __future__ import annotations

import abc
import dataclasses
import enum
import logging
import shlex
from collections.abc import Iterable, Sequence

logger = logging.getLogger(__name__)


class TaskStatusType(enum.Enum):
    """Represents the possible statuses that a task can return from its execution."""

    PENDING = enum.auto()  #: The task is pending execution (only to be returned from :meth:`Task.prepare`).
    FAILED = enum.auto()  #: The task failed it's preparation or execution.
    INTERRUPTED = enum.auto()  #: The task was interrupted by the user.
    SUCCEEDED = enum.auto()  #: The task succeeded it's execution (only to be returned from :meth:`Task.execute`).
    SKIPPED = enum.auto()  #: The task was skipped (i.e. it is not applicable).
    UP_TO_DATE = enum.auto()  #: The task's outputs are fresh and no command was invoked.

    def is_ok(self) -> bool:
        return not self.is_not_ok()

    def is_not_ok(self) -> bool:
        return self in (TaskStatusType.PENDING, TaskStatusType.FAILED, TaskStatusType.INTERRUPTED)

    def is_pending(self) -> bool:
        return self == TaskStatusType.PENDING

    def is_failed(self) -> bool:
        return self == TaskStatusType.FAILED

    def is_interrupted(self) -> bool:
        return self == TaskStatusType.INTERRUPTED

    def is_succeeded(self) -> bool:
        return self == TaskStatusType.SUCCEEDED

    def is_skipped(self) -> bool:
        return self == TaskStatusType.SKIPPED

    def is_up_to_date(self) -> bool:
        return self == TaskStatusType.UP_TO_DATE


@dataclasses.dataclass
class TaskStatus:
    """Represents a task status with a message."""

    type: TaskStatusType
    message: str | None

    def is_ok(self) -> bool:
        return self.type.is_ok()

    def is_not_ok(self) -> bool:
        return self.type.is_not_ok()

    def is_pending(self) -> bool:
        return self.type == TaskStatusType.PENDING

    def is_failed(self) -> bool:
        return self.type == TaskStatusType.FAILED

    def is_interrupted(self) -> bool:
        return self.type == TaskStatusType.INTERRUPTED

    def is_succeeded(self) -> bool:
        return self.type == TaskStatusType.SUCCEEDED

    def is_skipped(self) -> bool:
        return self.type == TaskStatusType.SKIPPED

    def is_up_to_date(self) -> bool:
        return self.type == TaskStatusType.UP_TO_DATE

    @staticmethod
    def pending(message: str | None = None) -> TaskStatus:
        return TaskStatus(TaskStatusType.PENDING, message)

    @staticmethod
    def failed(message: str | None = None) -> TaskStatus:
        return TaskStatus(TaskStatusType.FAILED, message)

    @staticmethod
    def interrupted(message: str | None = None) -> TaskStatus:
        return TaskStatus(TaskStatusType.INTERRUPTED, message)

    @staticmethod
    def succeeded(message: str | None = None) -> TaskStatus:
        return TaskStatus(TaskStatusType.SUCCEEDED, message)

    @staticmethod
    def skipped(message: str | None = None) -> TaskStatus:
        return TaskStatus(TaskStatusType.SKIPPED, message)

    @staticmethod
    def up_to_date(message: str | None = None) -> TaskStatus:
        return TaskStatus(TaskStatusType.UP_TO_DATE, message)

    @staticmethod
    def from_exit_code(command: Sequence[str] | None, code: int) -> TaskStatus:
        return TaskStatus(
            TaskStatusType.SUCCEEDED if code == 0 else TaskStatusType.FAILED,
            None
            if code == 0 or command is None
            else 'command "' + " ".join(map(shlex.quote, command)) + f'" returned exit code {code}',
        )


class Task(abc.ABC):
    """
    A Task is a unit of work that can be executed.

    Tasks go through two stages when the build graph is executed:

    * Preparation (:meth:`prepare`) -- The task checks whether its outputs are up to date. This happens in the
        scheduler thread immediately before the task would be dispatched, i.e. after all of its dependencies
        completed.
    * Execution (:meth:`execute`) -- The task executes its logic, usually in a worker thread.

    Tasks are uniquely identified by their :attr:`name` within a build graph.
    """

    #: A logger that is bound to the task's name.
    logger: logging.Logger

    def __init__(self, name: str) -> None:
        assert isinstance(name, str), type(name)
        self.name = name
        self.logger = logging.getLogger(f"{name} [{type(self).__module__}.{type(self).__qualname__}]")
        self.__dependencies: list[Task] = []

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.name})"

    def depends_on(self, *tasks: Task) -> None:
        """
        Declare that this task depends on the specified other tasks. The dependent task is only executed after all
        of its dependencies were executed successfully (or were up to date).
        """

        for idx, task in enumerate(tasks):
            if not isinstance(task, Task):
                raise TypeError(f"tasks[{idx}] must be Task, got {type(task).__name__}")
            if task is self:
                raise ValueError(f"task {self.name} can not depend on itself")
            if task not in self.__dependencies:
                self.__dependencies.append(task)

    def get_relationships(self) -> Iterable[Task]:
        """
        Return the tasks that this task depends on.
        """

        return iter(self.__dependencies)

    def prepare(self) -> TaskStatus | None:
        """
        Called before a task is executed to check whether the task is up to date. The implementation of this
        method should be quick to determine the task status, otherwise it should be done in :meth:`execute`.

        This method should not return :attr:`TaskStatusType.SUCCEEDED` or :attr:`TaskStatusType.FAILED`. If `None`
        is returned, it is assumed that the task is :attr:`TaskStatusType.PENDING`.
        """

        return TaskStatus.pending()

    @abc.abstractmethod
    def execute(self) -> TaskStatus | None:
        """
        Implements the behaviour of the task. The task can assume that all of its dependencies have been executed
        successfully.

        This method should not return :attr:`TaskStatusType.PENDING`. If `None` is returned, it is assumed that the
        task is :attr:`TaskStatusType.SUCCEEDED`. If an exception is raised during this method, the task status is
        :attr:`TaskStatusType.FAILED`.
        """

        raise NotImplementedError


class GroupTask(Task):
    """This task can be used to group tasks under a common name. Ultimately it is just another task that depends on
    the tasks in the group, forcing them to be executed when this task is targeted."""

    tasks: list[Task]

    def __init__(self, name: str, tasks: Iterable[Task] = ()) -> None:
        super().__init__(name)
        self.tasks = []
        self.add(tasks)

    def add(self, tasks: Task | Iterable[Task]) -> None:
        """Add one or more tasks to this group."""

        if isinstance(tasks, Task):
            tasks = [tasks]
        for task in tasks:
            if task not in self.tasks:
                self.tasks.append(task)

    # Task

    def get_relationships(self) -> Iterable[Task]:
        yield from self.tasks
        yield from super().get_relationships()

    def prepare(self) -> TaskStatus | None:
        return TaskStatus.skipped("is a GroupTask")

    def execute(self) -> TaskStatus | None:
        raise RuntimeError("GroupTask cannot be executed")

