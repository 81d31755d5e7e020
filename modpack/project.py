"""Minimal host project model the plugin is applied to.

Holds the project coordinates, source set outputs, dependency configurations,
a task graph and after-evaluate hooks.
"""

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, Dict, List, Optional

from .config import DEFAULT_PROJECT_FILE, ProjectSpec, load_project_spec
from .configurations import ConfigurationContainer
from .identifiers import module_name

logger = logging.getLogger(__name__)


class UnknownTaskError(KeyError):
    """Raised when a task name is not registered on the project."""


class TaskCycleError(RuntimeError):
    """Raised when task dependencies form a cycle."""


@dataclass
class Task:
    name: str
    action: Optional[Callable[["Project"], None]] = None
    depends_on: List[str] = field(default_factory=list)
    group: Optional[str] = None
    description: Optional[str] = None

    def depends(self, *names: str) -> None:
        for n in names:
            if n not in self.depends_on:
                self.depends_on.append(n)


class TaskContainer:
    def __init__(self, project: "Project") -> None:
        self._project = project
        self._tasks: Dict[str, Task] = {}

    def add(self, task: Task) -> Task:
        if task.name in self._tasks:
            raise ValueError(f"task {task.name!r} already exists")
        self._tasks[task.name] = task
        return task

    def __getitem__(self, name: str) -> Task:
        try:
            return self._tasks[name]
        except KeyError:
            raise UnknownTaskError(name) from None

    def __contains__(self, name: str) -> bool:
        return name in self._tasks

    def execution_order(self, name: str) -> List[Task]:
        """Return `name` and its dependencies, dependencies first."""
        order: List[Task] = []
        done = set()
        visiting: List[str] = []

        def visit(n: str) -> None:
            if n in done:
                return
            if n in visiting:
                raise TaskCycleError(" -> ".join(visiting + [n]))
            task = self[n]
            visiting.append(n)
            for dep in task.depends_on:
                visit(dep)
            visiting.pop()
            done.add(n)
            order.append(task)

        visit(name)
        return order

    def run(self, name: str) -> List[str]:
        """Run a task after its dependencies; returns the names of executed tasks."""
        executed = []
        for task in self.execution_order(name):
            logger.info(":%s", task.name)
            if task.action is not None:
                task.action(self._project)
            executed.append(task.name)
        return executed


class Project:
    """A module project rooted at `root_dir`.

    `root_dir` also acts as the root project: installed and assembled modules
    live under `<root_dir>/mods`.
    """

    def __init__(self, root_dir, spec: ProjectSpec) -> None:
        self.root_dir = Path(root_dir).resolve()
        self.spec = spec
        self.group = spec.group
        self.name = spec.name
        self.version = spec.version
        self.build_dir = self.root_dir / "build"
        self.configurations = ConfigurationContainer()
        self.tasks = TaskContainer(self)
        self.applied_plugins: List[str] = []
        self.repositories: List[str] = []
        self.source_compatibility: Optional[str] = None
        self.target_compatibility: Optional[str] = None
        self._after_evaluate: List[Callable[["Project"], None]] = []
        self._evaluated = False

        # lifecycle tasks every project carries
        self.tasks.add(Task("classes", description="Assembles compiled classes"))
        self.tasks.add(Task("test", description="Runs the tests"))

    @classmethod
    def load(cls, root_dir, project_file: Optional[str] = None) -> "Project":
        root = Path(root_dir)
        spec = load_project_spec(root / (project_file or DEFAULT_PROJECT_FILE))
        return cls(root, spec)

    def __repr__(self) -> str:
        return f"project '{self.name}'"

    @property
    def module_name(self) -> str:
        return module_name(self.group, self.name, self.version)

    @property
    def mods_dir(self) -> Path:
        return self.root_dir / "mods"

    @property
    def vertx(self):
        return self.spec.vertx

    def file(self, path) -> Path:
        p = Path(path)
        return p if p.is_absolute() else self.root_dir / p

    def source_set_outputs(self, include_test: bool = False) -> Dict[str, Path]:
        return {
            name: self.file(out)
            for name, out in self.spec.source_sets.items()
            if include_test or name != "test"
        }

    def apply_plugin(self, name: str) -> None:
        if name not in self.applied_plugins:
            self.applied_plugins.append(name)

    def after_evaluate(self, hook: Callable[["Project"], None]) -> None:
        if self._evaluated:
            hook(self)
        else:
            self._after_evaluate.append(hook)

    def evaluate(self) -> None:
        """Fire after-evaluate hooks once, in registration order."""
        if self._evaluated:
            return
        self._evaluated = True
        hooks, self._after_evaluate = self._after_evaluate, []
        for hook in hooks:
            hook(self)
