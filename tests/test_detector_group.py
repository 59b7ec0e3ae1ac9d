import logging

import pytest

from oomd.detector_group import DetectorGroup
from oomd.plugin import BasePlugin, PluginRet
from oomd.types import LogSources

log = logging.getLogger("tests.detector_plugin")


class _Fixed(BasePlugin):
    def __init__(self, ret):
        self.ret = ret
        self.runs = 0
        self.preruns = 0

    def init(self, args, context):
        pass

    def prerun(self, context):
        self.preruns += 1

    def run(self, context):
        self.runs += 1
        log.warning("detector ran")
        return self.ret


def _group(*rets):
    return DetectorGroup("group1", [_Fixed(r) for r in rets])


def test_name_kept():
    assert _group().name == "group1"


@pytest.mark.parametrize(
    "rets, expected",
    [
        ((PluginRet.CONTINUE,), True),
        ((PluginRet.CONTINUE, PluginRet.STOP), False),
        ((PluginRet.STOP, PluginRet.CONTINUE), False),
        ((PluginRet.ASYNC_PAUSED, PluginRet.CONTINUE), True),
        ((), True),
    ],
)
def test_check_result(rets, expected):
    assert _group(*rets).check(object(), 0) is expected


def test_all_detectors_run_after_stop():
    group = _group(PluginRet.STOP, PluginRet.CONTINUE, PluginRet.STOP)
    group.check(object(), 0)
    assert [d.runs for d in group.detectors] == [1, 1, 1]


def test_prerun_reaches_every_detector():
    group = _group(PluginRet.CONTINUE, PluginRet.STOP)
    group.prerun(object())
    group.prerun(object())
    assert [d.preruns for d in group.detectors] == [2, 2]
    assert [d.runs for d in group.detectors] == [0, 0]


def test_plugin_logs_silenced(caplog):
    caplog.set_level(logging.WARNING)
    group = _group(PluginRet.CONTINUE)
    group.check(object(), LogSources.PLUGINS)
    assert not [r for r in caplog.records if r.name == log.name]
    assert logging.root.manager.disable == logging.NOTSET


def test_plugin_logs_kept_when_only_engine_silenced(caplog):
    caplog.set_level(logging.WARNING)
    group = _group(PluginRet.CONTINUE, PluginRet.CONTINUE)
    group.check(object(), LogSources.ENGINE)
    assert len([r for r in caplog.records if r.name == log.name]) == 2