"""JSON front end that builds the configuration IR."""

from __future__ import annotations

import json
import re
from typing import Any, TypeVar

from oomd.ir import (
    Action,
    Detector,
    DetectorGroup,
    DropIn,
    Plugin,
    PrekillHook,
    Root,
    Ruleset,
    dump_ir,
)

P = TypeVar("P", bound=Plugin)

# Strings are matched first so that comment markers inside them survive.
_SCANNER = re.compile(r'"(?:\\.|[^"\\])*"|//[^\n]*|/\*.*?\*/', re.S)


class ConfigParseError(ValueError):
    """Raised when a configuration document cannot be parsed."""


def _strip_comments(text: str) -> str:
    return _SCANNER.sub(
        lambda m: m.group() if m.group().startswith('"') else " ", text
    )


def _reject_constant(name: str) -> Any:
    raise ConfigParseError(f"Unable to parse JSON: invalid value {name}")


def _load(text: str) -> Any:
    cleaned = _strip_comments(text.lstrip("\ufeff")).lstrip()
    decoder = json.JSONDecoder(parse_constant=_reject_constant)
    try:
        value, _ = decoder.raw_decode(cleaned)
    except json.JSONDecodeError as exc:
        raise ConfigParseError(f"Unable to parse JSON: {exc}") from exc
    return value


def _get(value: Any, key: str, default: Any = None) -> Any:
    if value is None:
        return default
    if not isinstance(value, dict):
        raise ConfigParseError(f"Expected an object when looking up {key!r}")
    return value.get(key, default)


def _elements(value: Any) -> list[Any]:
    if isinstance(value, list):
        return value
    if isinstance(value, dict):
        return [value[key] for key in sorted(value)]
    return []


def _as_string(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, str):
        return value
    if isinstance(value, int):
        return str(value)
    if isinstance(value, float):
        text = f"{value:.17g}"
        if not any(ch in text for ch in ".eE"):
            text += ".0"
        return text
    raise ConfigParseError(f"Value {value!r} is not convertible to a string")


def _as_bool(value: Any) -> bool:
    if value is None:
        return False
    if isinstance(value, (bool, int, float)):
        return bool(value)
    raise ConfigParseError(f"Value {value!r} is not convertible to a bool")


def _parse_plugin(cls: type[P], value: Any) -> P:
    if not isinstance(value, dict):
        return cls()
    name = value.get("name")
    if not isinstance(name, str):
        return cls()

    plugin = cls(name=name)
    args = value.get("args")
    if not isinstance(args, dict):
        return plugin

    for key in sorted(args):
        arg = args[key]
        # Only strings, numbers and booleans are accepted as arguments
        if arg is None or isinstance(arg, (dict, list)):
            break
        plugin.args[key] = _as_string(arg)
    return plugin


def _parse_detector_group(value: Any) -> DetectorGroup:
    group = DetectorGroup()
    if not isinstance(value, list):
        return group
    for position, item in enumerate(value):
        if position == 0 and isinstance(item, str):
            group.name = item
            continue
        group.detectors.append(_parse_plugin(Detector, item))
    return group


def _parse_drop_in(value: Any) -> DropIn:
    return DropIn(
        disable_on_drop_in=_as_bool(_get(value, "disable-on-drop-in", False)),
        detectorgroups_enabled=_as_bool(_get(value, "detectors", False)),
        actiongroup_enabled=_as_bool(_get(value, "actions", False)),
    )


def _parse_ruleset(value: Any) -> Ruleset:
    return Ruleset(
        name=_as_string(_get(value, "name", "")),
        dropin=_parse_drop_in(_get(value, "drop-in")),
        silence_logs=_as_string(_get(value, "silence-logs")),
        post_action_delay=_as_string(_get(value, "post_action_delay")),
        prekill_hook_timeout=_as_string(_get(value, "prekill_hook_timeout")),
        dgs=[_parse_detector_group(dg) for dg in _elements(_get(value, "detectors"))],
        acts=[_parse_plugin(Action, act) for act in _elements(_get(value, "actions"))],
    )


class JsonConfigParser:
    """Parses JSON configuration text (comments allowed) into a Root."""

    def parse(self, text: str) -> Root:
        document = _load(text)
        root = Root(
            rulesets=[
                _parse_ruleset(rs) for rs in _elements(_get(document, "rulesets"))
            ],
            prekill_hooks=[
                _parse_plugin(PrekillHook, hook)
                for hook in _elements(_get(document, "prekill_hooks"))
            ],
        )
        dump_ir(root)
        return root