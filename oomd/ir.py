"""Intermediate representation of a daemon configuration.

Detector groups fire when every detector in them continues; a fired group
starts its ruleset's action chain, which runs until an action stops it.
Any front end that can build a Root can feed the compiler.
"""

from __future__ import annotations

import logging
from collections.abc import Iterator
from dataclasses import dataclass, field

logger = logging.getLogger(__name__)


@dataclass
class Plugin:
    """A named plugin with string arguments."""

    name: str = ""
    args: dict[str, str] = field(default_factory=dict)


@dataclass
class Detector(Plugin):
    """A plugin used as a detector."""


@dataclass
class Action(Plugin):
    """A plugin used as an action."""


@dataclass
class PrekillHook(Plugin):
    """A plugin run before a cgroup is killed."""


@dataclass
class DetectorGroup:
    name: str = ""
    detectors: list[Detector] = field(default_factory=list)


@dataclass
class DropIn:
    """Which parts of a ruleset drop-in configs may override."""

    disable_on_drop_in: bool = False
    detectorgroups_enabled: bool = False
    actiongroup_enabled: bool = False


@dataclass
class Ruleset:
    name: str = ""
    dgs: list[DetectorGroup] = field(default_factory=list)
    acts: list[Action] = field(default_factory=list)
    dropin: DropIn = field(default_factory=DropIn)
    silence_logs: str = ""
    post_action_delay: str = ""
    prekill_hook_timeout: str = ""


@dataclass
class Root:
    rulesets: list[Ruleset] = field(default_factory=list)
    prekill_hooks: list[PrekillHook] = field(default_factory=list)


def _plugin_lines(label: str, plugin: Plugin, depth: int) -> Iterator[tuple[int, str]]:
    yield depth, f"{label}={plugin.name}"
    yield depth + 1, "Args="
    for key, value in plugin.args.items():
        yield depth + 2, f"{key}={value}"


def _ir_lines(root: Root) -> Iterator[tuple[int, str]]:
    yield 0, f"{len(root.prekill_hooks)} PrekillHooks="
    for hook in root.prekill_hooks:
        yield from _plugin_lines("Hook", hook, 1)

    yield 0, f"{len(root.rulesets)} Rulesets="
    for ruleset in root.rulesets:
        yield 1, f"Ruleset={ruleset.name}"
        yield 2, "DropIn="
        yield 3, f"Detectors={int(ruleset.dropin.detectorgroups_enabled)}"
        yield 3, f"Actions={int(ruleset.dropin.actiongroup_enabled)}"
        yield 3, f"DisableOnDrop={int(ruleset.dropin.disable_on_drop_in)}"
        yield 2, f"SilenceLogs={ruleset.silence_logs}"
        for dg in ruleset.dgs:
            yield 2, f"DetectorGroup={dg.name}"
            for detector in dg.detectors:
                yield from _plugin_lines("Detector", detector, 3)
        for act in ruleset.acts:
            yield from _plugin_lines("Action", act, 2)


def dump_ir(root: Root) -> list[str]:
    """Log an indented description of root and return its lines."""
    lines = [f"{'  ' * depth}{text}" for depth, text in _ir_lines(root)]
    for line in lines:
        logger.info("%s", line)
    return lines