"""The engine: base rulesets, their drop-ins and prekill hooks."""

from __future__ import annotations

import logging
from collections import Counter, deque
from collections.abc import Iterable
from dataclasses import dataclass, field

from oomd.cgroup_path import CgroupPath
from oomd.plugin import PrekillHook, PrekillHookInvocation
from oomd.ruleset import RunContext, Ruleset
from oomd.types import CoreStats

logger = logging.getLogger(__name__)


@dataclass
class DropInUnit:
    """Everything one drop-in config contributes to the engine."""

    prekill_hooks: list[PrekillHook] = field(default_factory=list)
    rulesets: list[Ruleset] = field(default_factory=list)


@dataclass
class _DropInRuleset:
    tag: str
    ruleset: Ruleset


@dataclass
class _BaseRuleset:
    ruleset: Ruleset
    dropins: deque[_DropInRuleset] = field(default_factory=deque)


@dataclass
class _TaggedPrekillHook:
    dropin_tag: str | None
    hook: PrekillHook


class Engine:
    """Runs rulesets each interval and chooses prekill hooks."""

    def __init__(
        self,
        rulesets: Iterable[Ruleset | None],
        prekill_hooks: Iterable[PrekillHook],
    ) -> None:
        self._rulesets = [_BaseRuleset(rs) for rs in rulesets if rs is not None]
        # Kept in reverse order so drop-in hooks, appended at the end, win.
        self._hooks_reversed = [
            _TaggedPrekillHook(None, hook) for hook in reversed(list(prekill_hooks))
        ]
        self.stats: Counter[str] = Counter()

    def add_drop_in_config(self, tag: str, unit: DropInUnit) -> bool:
        """Add every part of unit under tag; False if a target is missing."""
        for ruleset in unit.rulesets:
            if not self.add_drop_in_ruleset(tag, ruleset):
                self.remove_drop_in_config(tag)
                return False
        self._hooks_reversed.extend(
            _TaggedPrekillHook(tag, hook) for hook in reversed(unit.prekill_hooks)
        )
        return True

    def add_drop_in_ruleset(self, tag: str, ruleset: Ruleset | None) -> bool:
        """Put ruleset in front of the base ruleset of the same name."""
        if ruleset is None:
            return False
        base = next(
            (b for b in self._rulesets if b.ruleset.name == ruleset.name), None
        )
        if base is None:
            logger.error("Error: could not locate targeted ruleset: %s", ruleset.name)
            return False

        # Drop-in rulesets run in LIFO order.
        base.dropins.appendleft(_DropInRuleset(tag, ruleset))
        base.ruleset.mark_drop_in_targeted()
        self.stats[CoreStats.NUM_DROP_IN_ADDS.value] += 1
        return True

    def remove_drop_in_config(self, tag: str) -> None:
        """Remove everything added under tag."""
        for base in self._rulesets:
            kept = deque(d for d in base.dropins if d.tag != tag)
            removed = len(base.dropins) - len(kept)
            if not removed:
                continue
            base.dropins = kept
            for _ in range(removed):
                base.ruleset.mark_drop_in_untargeted()
            self.stats[CoreStats.NUM_DROP_IN_ADDS.value] -= removed

        self._hooks_reversed = [
            tagged for tagged in self._hooks_reversed if tagged.dropin_tag != tag
        ]

    def prerun(self, context: RunContext) -> None:
        for base in self._rulesets:
            for dropin in base.dropins:
                dropin.ruleset.prerun(context)
            base.ruleset.prerun(context)

    def run_once(self, context: RunContext) -> None:
        fired = 0
        for base in self._rulesets:
            for dropin in base.dropins:
                fired += dropin.ruleset.run_once(context)
            base.ruleset.run_once(context)
        self.stats[CoreStats.NUM_DROP_IN_FIRED.value] += fired

    def fire_prekill_hook(
        self, cgroup: CgroupPath, context: RunContext
    ) -> PrekillHookInvocation | None:
        """Fire the first hook that may run on cgroup, drop-ins first."""
        for tagged in reversed(self._hooks_reversed):
            if tagged.hook.can_run_on_cgroup(cgroup):
                return tagged.hook.fire(cgroup, context.action_context)
        return None