"""Plugin base classes, prekill hooks and plugin registries."""

from __future__ import annotations

import enum
from abc import ABC, abstractmethod
from collections.abc import Callable, Mapping
from dataclasses import dataclass
from typing import Any, Generic, TypeVar

from oomd.cgroup_path import CgroupPath

T = TypeVar("T")


class PluginRet(enum.Enum):
    """Outcome of a plugin run."""

    CONTINUE = 0
    STOP = 1
    ASYNC_PAUSED = 2


class PluginInitError(Exception):
    """Raised by a plugin whose arguments cannot be used."""


@dataclass(frozen=True)
class PluginConstructionContext:
    """Information handed to plugins while they are being built."""

    cgroup_fs: str


class BasePlugin(ABC):
    """A detector or action plugin."""

    name: str = ""

    @abstractmethod
    def init(self, args: Mapping[str, str], context: PluginConstructionContext) -> None:
        """Configure the plugin; raise PluginInitError on bad arguments."""

    def prerun(self, context: Any) -> None:
        """Called every interval before any plugin runs; lightweight work only."""

    @abstractmethod
    def run(self, context: Any) -> PluginRet:
        """Do the plugin's work and report how the chain should proceed."""


class PrekillHookInvocation(ABC):
    """Handle on asynchronous work started by a prekill hook."""

    @abstractmethod
    def did_finish(self) -> bool:
        """True once the hook's work is complete."""


class PrekillHook(ABC):
    """A hook fired before a cgroup matching its patterns is killed."""

    def __init__(self) -> None:
        self.name = ""
        self.cgroup_patterns: frozenset[CgroupPath] = frozenset()

    def init(self, args: Mapping[str, str], context: PluginConstructionContext) -> None:
        """Read the required comma-separated "cgroup" pattern list."""
        spec = args.get("cgroup")
        if spec is None:
            raise PluginInitError(
                f"{self.name or type(self).__name__}: missing argument 'cgroup'"
            )
        patterns = frozenset(
            CgroupPath(context.cgroup_fs, part.strip())
            for part in spec.split(",")
            if part.strip()
        )
        if not patterns:
            raise PluginInitError(
                f"{self.name or type(self).__name__}: empty argument 'cgroup'"
            )
        self.cgroup_patterns = patterns

    @abstractmethod
    def fire(self, cgroup: CgroupPath, action_context: Any) -> PrekillHookInvocation:
        """Start the hook's work without blocking."""

    def can_run_on_cgroup(self, cgroup: CgroupPath) -> bool:
        return any(
            cgroup.has_descendant_with_prefix_matching(pattern)
            for pattern in self.cgroup_patterns
        )


class PluginRegistry(Generic[T]):
    """Maps plugin names to factories."""

    def __init__(self) -> None:
        self._factories: dict[str, Callable[[], T]] = {}

    def register(self, name: str, factory: Callable[[], T]) -> Callable[[], T]:
        self._factories[name] = factory
        return factory

    def create(self, name: str) -> T:
        try:
            factory = self._factories[name]
        except KeyError:
            raise KeyError(f"Could not locate plugin={name} in plugin registry") from None
        return factory()

    def __contains__(self, name: object) -> bool:
        return name in self._factories