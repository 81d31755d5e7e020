"""Dependency configurations of a project.

A configuration is a named, append-only bag of dependencies that may extend
other configurations. Appends are serialized with a lock so callers on
installer threads can register dependencies safely, although the include
resolver merges its results from the calling thread.
"""

import threading
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, Iterator, List, Set, Tuple, Union


@dataclass(frozen=True)
class FileCollection:
    """A fixed set of files or directories."""

    paths: Tuple[Path, ...]

    @classmethod
    def of(cls, *paths: Union[str, Path]) -> "FileCollection":
        return cls(tuple(Path(p) for p in paths))

    def files(self) -> Set[Path]:
        return set(self.paths)


@dataclass(frozen=True)
class FileTree:
    """Files below `root` matching the glob `include`, evaluated lazily."""

    root: Path
    include: str = "**/*"

    def files(self) -> Set[Path]:
        if not self.root.is_dir():
            return set()
        return {p for p in self.root.glob(self.include) if p.is_file()}


@dataclass(frozen=True)
class ExternalDependency:
    """A `group:name:version` coordinate; recorded but never fetched."""

    coordinates: str

    def files(self) -> Set[Path]:
        return set()


Dependency = Union[FileCollection, FileTree, ExternalDependency]


class Configuration:
    def __init__(self, name: str) -> None:
        self.name = name
        self._dependencies: List[Dependency] = []
        self._extends: List["Configuration"] = []
        self._lock = threading.Lock()

    def __repr__(self) -> str:
        return f"Configuration({self.name!r})"

    @property
    def dependencies(self) -> List[Dependency]:
        """Dependencies declared directly on this configuration."""
        with self._lock:
            return list(self._dependencies)

    def add(self, dependency: Dependency) -> None:
        with self._lock:
            self._dependencies.append(dependency)

    def extends_from(self, *others: "Configuration") -> None:
        for other in others:
            if other is self or self in other.hierarchy():
                raise ValueError(f"{self.name} cannot extend {other.name}: cycle")
            self._extends.append(other)

    def hierarchy(self) -> List["Configuration"]:
        """This configuration followed by everything it extends, without duplicates."""
        out: List[Configuration] = []
        stack = [self]
        while stack:
            conf = stack.pop()
            if conf in out:
                continue
            out.append(conf)
            stack.extend(reversed(conf._extends))
        return out

    def all_dependencies(self) -> List[Dependency]:
        deps: List[Dependency] = []
        for conf in self.hierarchy():
            deps.extend(conf.dependencies)
        return deps

    def files(self) -> Set[Path]:
        out: Set[Path] = set()
        for dep in self.all_dependencies():
            out |= dep.files()
        return out


class ConfigurationContainer:
    def __init__(self) -> None:
        self._configurations: Dict[str, Configuration] = {}

    def create(self, name: str) -> Configuration:
        if name in self._configurations:
            raise ValueError(f"configuration {name!r} already exists")
        conf = Configuration(name)
        self._configurations[name] = conf
        return conf

    def maybe_create(self, name: str) -> Configuration:
        conf = self._configurations.get(name)
        return conf if conf is not None else self.create(name)

    def __getitem__(self, name: str) -> Configuration:
        try:
            return self._configurations[name]
        except KeyError:
            raise KeyError(f"unknown configuration {name!r}") from None

    def __contains__(self, name: str) -> bool:
        return name in self._configurations

    def __iter__(self) -> Iterator[Configuration]:
        return iter(list(self._configurations.values()))
