"""A ruleset: detector groups that gate a chain of actions."""

from __future__ import annotations

import logging
import time
import uuid
from collections.abc import Iterable
from dataclasses import dataclass, field
from datetime import timedelta

from oomd.detector_group import DetectorGroup, _logging_disabled
from oomd.plugin import BasePlugin, PluginRet
from oomd.types import LogSources

logger = logging.getLogger(__name__)

DEFAULT_POST_ACTION_DELAY = 15
DEFAULT_PREKILL_HOOK_TIMEOUT = 5


@dataclass
class ActionContext:
    """Describes the detector group firing that started an action chain."""

    ruleset: str = ""
    detectorgroup: str = ""
    action_uuid: str = ""
    # Monotonic-clock deadline for prekill hooks started by this chain.
    prekill_hook_timeout: float | None = None


@dataclass
class RunContext:
    """State shared with plugins while rulesets run."""

    action_context: ActionContext = field(default_factory=ActionContext)
    invoking_ruleset: Ruleset | None = None


@dataclass
class _AsyncChainState:
    plugin: BasePlugin
    action_context: ActionContext


def _seconds(duration: float | timedelta) -> float:
    if isinstance(duration, timedelta):
        return duration.total_seconds()
    return float(duration)


class Ruleset:
    """Runs its action chain whenever any of its detector groups fires."""

    def __init__(
        self,
        name: str,
        detector_groups: Iterable[DetectorGroup],
        action_group: Iterable[BasePlugin],
        disable_on_drop_in: bool = False,
        detectorgroups_dropin_enabled: bool = False,
        actiongroup_dropin_enabled: bool = False,
        silenced_logs: int = 0,
        post_action_delay: int = DEFAULT_POST_ACTION_DELAY,
        prekill_hook_timeout: int = DEFAULT_PREKILL_HOOK_TIMEOUT,
    ) -> None:
        self.name = name
        self.detector_groups = list(detector_groups)
        self.action_group = list(action_group)
        self.disable_on_drop_in = disable_on_drop_in
        self.detectorgroups_dropin_enabled = detectorgroups_dropin_enabled
        self.actiongroup_dropin_enabled = actiongroup_dropin_enabled
        self.silenced_logs = LogSources(silenced_logs)
        self.post_action_delay = post_action_delay
        self.prekill_hook_timeout = prekill_hook_timeout
        self._enabled = True
        self._num_targeted = 0
        self._active_chain: _AsyncChainState | None = None
        self._pause_actions_until = 0.0
        self._plugin_overrode_post_action_delay = False

    @property
    def enabled(self) -> bool:
        return self._enabled

    def merge_with_drop_in(self, other: Ruleset) -> None:
        """Take over other's detector groups and actions, where allowed.

        Raises ValueError if other overrides a part that does not accept
        drop-in configs.
        """
        if other.detector_groups:
            if not self.detectorgroups_dropin_enabled:
                raise ValueError("DetectorGroup drop-in configs disabled")
            self.detector_groups = other.detector_groups
        if other.action_group:
            if not self.actiongroup_dropin_enabled:
                raise ValueError("Action drop-in configs disabled")
            self.action_group = other.action_group

    def mark_drop_in_targeted(self) -> None:
        self._num_targeted += 1
        if self.disable_on_drop_in and self._num_targeted:
            self._enabled = False

    def mark_drop_in_untargeted(self) -> None:
        self._num_targeted -= 1
        if self._num_targeted <= 0:
            self._enabled = True

    def prerun(self, context: RunContext) -> None:
        if not self._enabled:
            return
        for group in self.detector_groups:
            group.prerun(context)
        for action in self.action_group:
            action.prerun(context)

    def run_once(self, context: RunContext) -> int:
        """Check every detector group and run the action chain if one fired.

        Returns 1 if the action chain was run to completion, 0 otherwise.
        """
        if not self._enabled:
            return 0

        # Every group is checked so that sliding-window detectors stay current.
        run_actions = False
        for group in self.detector_groups:
            if group.check(context, int(self.silenced_logs)) and not run_actions:
                run_actions = True
                context.action_context = ActionContext(
                    ruleset=self.name,
                    detectorgroup=group.name,
                    action_uuid=str(uuid.uuid4()),
                    prekill_hook_timeout=time.monotonic() + self.prekill_hook_timeout,
                )
                context.invoking_ruleset = self

        try:
            # A delay of zero must not cause a pause, hence the strict compare.
            if time.monotonic() < self._pause_actions_until:
                return 0

            state = self._active_chain
            if state is not None:
                context.action_context = state.action_context
                self._active_chain = None
                for index, action in enumerate(self.action_group):
                    if action is state.plugin:
                        return self._run_action_chain(index, context)

            if not run_actions:
                return 0

            self._log_engine(
                "DetectorGroup=%s has fired for Ruleset=%s. Running action chain.",
                context.action_context.detectorgroup,
                self.name,
            )
            return self._run_action_chain(0, context)
        finally:
            context.action_context = ActionContext()
            context.invoking_ruleset = None

    def pause_actions(self, duration: float | timedelta) -> None:
        """Skip the action chain for duration (seconds or a timedelta)."""
        self._pause_actions_until = time.monotonic() + _seconds(duration)
        self._plugin_overrode_post_action_delay = True

    def _log_engine(self, message: str, *args: object) -> None:
        if not self.silenced_logs & LogSources.ENGINE:
            logger.info(message, *args)

    def _run_action_chain(self, start: int, context: RunContext) -> int:
        silence_plugins = bool(self.silenced_logs & LogSources.PLUGINS)
        for action in self.action_group[start:]:
            self._log_engine("Running Action=%s", action.name)
            with _logging_disabled(silence_plugins):
                ret = action.run(context)

            if ret is PluginRet.CONTINUE:
                self._log_engine(
                    "Action=%s returned CONTINUE. Continuing action chain.",
                    action.name,
                )
                continue
            if ret is PluginRet.ASYNC_PAUSED:
                self._active_chain = _AsyncChainState(
                    plugin=action, action_context=context.action_context
                )
                logger.info("Action=%s returned ASYNC. Yielding action chain.", action.name)
                return 0
            if ret is PluginRet.STOP:
                self._log_engine(
                    "Action=%s returned STOP. Terminating action chain.", action.name
                )
                if not self._plugin_overrode_post_action_delay:
                    self._pause_actions_until = (
                        time.monotonic() + self.post_action_delay
                    )
                self._plugin_overrode_post_action_delay = False
            break
        return 1