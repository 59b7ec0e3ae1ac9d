"""Paths of cgroups relative to a mounted cgroup filesystem."""

from __future__ import annotations

import glob
import os


def _split(path: str) -> tuple[str, ...]:
    return tuple(part for part in path.split("/") if part)


class CgroupPath:
    """An immutable cgroup location: a cgroup fs mount plus relative parts."""

    __slots__ = ("_fs", "_parts", "_relative", "_absolute")

    def __init__(self, cgroup_fs: str, cgroup_path: str) -> None:
        if len(cgroup_fs) > 1 and cgroup_fs.endswith("/"):
            cgroup_fs = cgroup_fs[:-1]
        self._init(cgroup_fs, _split(cgroup_path))

    def _init(self, cgroup_fs: str, parts: tuple[str, ...]) -> None:
        self._fs = cgroup_fs
        self._parts = parts
        self._relative = "/".join(parts)
        self._absolute = (
            f"{cgroup_fs}/{self._relative}" if self._relative else cgroup_fs
        )

    @classmethod
    def _from_parts(cls, cgroup_fs: str, parts: tuple[str, ...]) -> CgroupPath:
        obj = cls.__new__(cls)
        obj._init(cgroup_fs, parts)
        return obj

    @property
    def absolute_path(self) -> str:
        return self._absolute

    @property
    def relative_path(self) -> str:
        """The cgroup path without the cgroup fs."""
        return self._relative

    @property
    def relative_path_parts(self) -> tuple[str, ...]:
        return self._parts

    @property
    def cgroup_fs(self) -> str:
        return self._fs

    def get_parent(self) -> CgroupPath:
        if self.is_root():
            raise ValueError("Cannot get parent of root")
        return self._from_parts(self._fs, self._parts[:-1])

    def get_child(self, path: str) -> CgroupPath:
        return self._from_parts(self._fs, self._parts + _split(path))

    def resolve_wildcard(self) -> list[CgroupPath]:
        """Existing directories under the same cgroup fs matching this glob."""
        fs = self._fs
        found = []
        for path in sorted(glob.glob(self._absolute)):
            if not os.path.isdir(path) or not path.startswith(fs):
                continue
            if len(path) == len(fs):
                found.append(CgroupPath(fs, ""))
            elif path[len(fs)] == "/":
                found.append(CgroupPath(fs, path[len(fs) + 1 :]))
        return found

    def has_descendant_with_prefix_matching(self, pattern: CgroupPath) -> bool:
        """True if this path and pattern agree on their common prefix.

        A pattern component of exactly "*" matches any single component.
        """
        return all(
            own == pat or pat == "*"
            for own, pat in zip(self._parts, pattern._parts)
        )

    def is_root(self) -> bool:
        return not self._parts

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, CgroupPath):
            return NotImplemented
        return self._absolute == other._absolute

    def __hash__(self) -> int:
        return hash(self._absolute)

    def __repr__(self) -> str:
        return f"CgroupPath({self._fs!r}, {self._relative!r})"