import uuid
from datetime import timedelta

import pytest

from oomd.detector_group import DetectorGroup
from oomd.plugin import BasePlugin, PluginRet
from oomd.ruleset import ActionContext, RunContext, Ruleset


class FixedPlugin(BasePlugin):
    def __init__(self, ret=PluginRet.CONTINUE, label="", log=None):
        self.ret = ret
        self.label = label
        self.log = log if log is not None else []
        self.runs = 0
        self.prerun_calls = 0
        self.seen = []
        self.seen_ruleset = []

    def init(self, args, context):
        pass

    def prerun(self, context):
        self.prerun_calls += 1

    def run(self, context):
        self.runs += 1
        self.log.append(self.label)
        self.seen.append(context.action_context)
        self.seen_ruleset.append(context.invoking_ruleset)
        return self.ret


class PausePlugin(FixedPlugin):
    def __init__(self, pauses):
        super().__init__()
        self.pauses = pauses
        self.left = pauses

    def run(self, context):
        super().run(context)
        if self.left > 0:
            self.left -= 1
            return PluginRet.ASYNC_PAUSED
        self.left = self.pauses
        return PluginRet.CONTINUE


class OverridePlugin(FixedPlugin):
    def run(self, context):
        super().run(context)
        context.invoking_ruleset.pause_actions(0)
        return PluginRet.STOP


def group(ret=PluginRet.CONTINUE, name="dg"):
    return DetectorGroup(name, [FixedPlugin(ret)])


def test_fired_group_runs_actions():
    act = FixedPlugin()
    rs = Ruleset("rs", [group()], [act], post_action_delay=0)
    ctx = RunContext()
    runs = 3
    results = [rs.run_once(ctx) for _ in range(runs)]
    assert results == [1] * runs
    assert act.runs == runs


def test_stopped_group_skips_actions():
    act = FixedPlugin()
    rs = Ruleset("rs", [group(PluginRet.STOP)], [act])
    assert rs.run_once(RunContext()) == 0
    assert act.runs == 0


def test_stop_ends_chain():
    first = FixedPlugin(PluginRet.STOP)
    second = FixedPlugin()
    rs = Ruleset("rs", [group()], [first, second], post_action_delay=0)
    assert rs.run_once(RunContext()) == 1
    assert (first.runs, second.runs) == (1, 0)


def test_default_post_action_delay_pauses():
    act = FixedPlugin(PluginRet.STOP)
    rs = Ruleset("rs", [group()], [act])
    ctx = RunContext()
    assert rs.run_once(ctx) == 1
    assert rs.run_once(ctx) == 0
    assert act.runs == 1


def test_zero_delay_does_not_pause():
    act = FixedPlugin(PluginRet.STOP)
    rs = Ruleset("rs", [group()], [act], post_action_delay=0)
    ctx = RunContext()
    assert rs.run_once(ctx) == 1
    assert rs.run_once(ctx) == 1


def test_pause_actions_blocks_chain():
    act = FixedPlugin()
    rs = Ruleset("rs", [group()], [act], post_action_delay=0)
    rs.pause_actions(timedelta(minutes=1))
    assert rs.run_once(RunContext()) == 0
    assert act.runs == 0


def test_plugin_override_of_post_action_delay():
    act = OverridePlugin()
    rs = Ruleset("rs", [group()], [act])
    ctx = RunContext()
    assert rs.run_once(ctx) == 1
    assert rs.run_once(ctx) == 1
    assert act.runs == 2


def test_action_context_during_and_after_run():
    act = FixedPlugin()
    rs = Ruleset("rs", [group(name="dg")], [act], post_action_delay=0)
    ctx = RunContext()
    rs.run_once(ctx)
    seen = act.seen[0]
    assert (seen.ruleset, seen.detectorgroup) == ("rs", "dg")
    assert str(uuid.UUID(seen.action_uuid)) == seen.action_uuid
    assert seen.prekill_hook_timeout is not None
    assert act.seen_ruleset[0] is rs
    assert ctx.action_context == ActionContext()
    assert ctx.invoking_ruleset is None


def test_first_firing_group_names_the_context():
    act = FixedPlugin()
    groups = [group(PluginRet.STOP, "a"), group(name="b"), group(name="c")]
    rs = Ruleset("rs", groups, [act], post_action_delay=0)
    rs.run_once(RunContext())
    assert act.seen[0].detectorgroup == "b"


def test_async_pause_resumes_at_paused_plugin():
    before = FixedPlugin()
    pauser = PausePlugin(1)
    after = FixedPlugin()
    rs = Ruleset("rs", [group()], [before, pauser, after], post_action_delay=0)
    ctx = RunContext()
    assert rs.run_once(ctx) == 0
    assert (before.runs, after.runs) == (1, 0)
    assert rs.run_once(ctx) == 1
    assert (before.runs, after.runs) == (1, 1)
    assert after.seen[0].action_uuid == before.seen[0].action_uuid


def test_async_resume_without_detector_firing():
    detector = FixedPlugin()
    pauser = PausePlugin(1)
    after = FixedPlugin()
    rs = Ruleset("rs", [DetectorGroup("dg", [detector])], [pauser, after], post_action_delay=0)
    ctx = RunContext()
    rs.run_once(ctx)
    detector.ret = PluginRet.STOP
    assert rs.run_once(ctx) == 1
    assert after.runs == 1


def test_merge_replaces_allowed_parts():
    target = Ruleset(
        "rs",
        [group()],
        [FixedPlugin()],
        detectorgroups_dropin_enabled=True,
        actiongroup_dropin_enabled=True,
    )
    new_group = group(name="new")
    new_action = FixedPlugin()
    target.merge_with_drop_in(Ruleset("rs", [new_group], [new_action]))
    assert target.detector_groups == [new_group]
    assert target.action_group == [new_action]


def test_merge_keeps_parts_drop_in_leaves_empty():
    old_group = group()
    target = Ruleset("rs", [old_group], [FixedPlugin()], actiongroup_dropin_enabled=True)
    target.merge_with_drop_in(Ruleset("rs", [], [FixedPlugin()]))
    assert target.detector_groups == [old_group]


@pytest.mark.parametrize(
    "groups, actions",
    [([True], []), ([], [True])],
)
def test_merge_rejects_disabled_parts(groups, actions):
    target = Ruleset("rs", [group()], [FixedPlugin()])
    other = Ruleset("rs", [group() for _ in groups], [FixedPlugin() for _ in actions])
    with pytest.raises(ValueError):
        target.merge_with_drop_in(other)


def test_targeting_disables_ruleset():
    act = FixedPlugin()
    rs = Ruleset("rs", [group()], [act], disable_on_drop_in=True, post_action_delay=0)
    ctx = RunContext()
    rs.mark_drop_in_targeted()
    rs.mark_drop_in_targeted()
    assert rs.run_once(ctx) == 0
    rs.mark_drop_in_untargeted()
    assert not rs.enabled
    rs.mark_drop_in_untargeted()
    assert rs.enabled
    assert rs.run_once(ctx) == 1


def test_targeting_without_disable_keeps_enabled():
    rs = Ruleset("rs", [group()], [FixedPlugin()])
    rs.mark_drop_in_targeted()
    assert rs.enabled


def test_prerun_reaches_all_plugins_unless_disabled():
    detector = FixedPlugin()
    act = FixedPlugin()
    rs = Ruleset("rs", [DetectorGroup("dg", [detector])], [act], disable_on_drop_in=True)
    rs.prerun(RunContext())
    assert (detector.prerun_calls, act.prerun_calls) == (1, 1)
    rs.mark_drop_in_targeted()
    rs.prerun(RunContext())
    assert (detector.prerun_calls, act.prerun_calls) == (1, 1)