from kiln.core.closure import check_acyclic, link_closure, object_closure
from kiln.core.config import BuildConfig, BuildType, Platform
from kiln.core.errors import (
    AssetNotFoundError,
    BuildError,
    ConfigurationError,
    CyclicDependencyError,
    KilnError,
    ProcessFailureError,
    SourceNotFoundError,
)
from kiln.core.executor import Graph, GraphExecutor, GraphExecutorObserver
from kiln.core.graph import TaskGraph
from kiln.core.paths import Layout
from kiln.core.runner import CommandRunner, SubprocessCommandRunner
from kiln.core.staleness import ArtifactState, Staleness
from kiln.core.target import Asset, ExternalTarget, Target, TargetKind
from kiln.core.task import GroupTask, Task, TaskStatus, TaskStatusType

__all__ = [
    "ArtifactState",
    "Asset",
    "AssetNotFoundError",
    "BuildConfig",
    "BuildError",
    "BuildType",
    "CommandRunner",
    "ConfigurationError",
    "CyclicDependencyError",
    "ExternalTarget",
    "Graph",
    "GraphExecutor",
    "GraphExecutorObserver",
    "GroupTask",
    "KilnError",
    "Layout",
    "Platform",
    "ProcessFailureError",
    "SourceNotFoundError",
    "Staleness",
    "SubprocessCommandRunner",
    "Target",
    "TargetKind",
    "Task",
    "TaskGraph",
    "TaskStatus",
    "TaskStatusType",
    "check_acyclic",
    "link_closure",
    "object_closure",
]
