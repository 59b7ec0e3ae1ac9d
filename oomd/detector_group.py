"""A named group of detectors that fires when none of them stops."""

from __future__ import annotations

import logging
from collections.abc import Iterable, Iterator
from contextlib import contextmanager
from typing import Any

from oomd.plugin import BasePlugin, PluginRet
from oomd.types import LogSources


@contextmanager
def _logging_disabled(active: bool) -> Iterator[None]:
    if not active:
        yield
        return
    previous = logging.root.manager.disable
    logging.disable(logging.CRITICAL)
    try:
        yield
    finally:
        logging.disable(previous)


class DetectorGroup:
    """Detectors checked together; the group triggers if none returns STOP."""

    def __init__(self, name: str, detectors: Iterable[BasePlugin]) -> None:
        self.name = name
        self.detectors = list(detectors)

    def prerun(self, context: Any) -> None:
        for detector in self.detectors:
            detector.prerun(context)

    def check(self, context: Any, silenced_logs: int = 0) -> bool:
        """Run every detector and report whether none of them returned STOP.

        All detectors run so that those keeping sliding windows stay current.
        ASYNC_PAUSED is not supported for detectors and counts as CONTINUE.
        """
        silence = bool(LogSources(silenced_logs) & LogSources.PLUGINS)
        triggered = True
        for detector in self.detectors:
            with _logging_disabled(silence):
                ret = detector.run(context)
            if ret is PluginRet.STOP:
                triggered = False
        return triggered