# oomd

The core of a rule engine for handling out-of-memory situations in
userspace. A configuration holds *rulesets*. Each ruleset has one or more
*detector groups* and an *action chain*:

- A detector group fires when none of its detectors returns `STOP`.
- When any group of a ruleset fires, the ruleset runs its actions in order.
- The chain ends when an action returns `STOP`.
- An action may instead return `ASYNC_PAUSED`. The chain then yields and
  resumes at that same action on a later run.

The package has no runtime dependencies.

```
pip install oomd
```

## Configuration IR and JSON

`oomd.ir` holds the intermediate representation of a configuration, as
plain dataclasses:

- `Root`
- `Ruleset`
- `DetectorGroup`
- `Detector`
- `Action`
- `PrekillHook`
- `DropIn`

`dump_ir(root)` logs an indented description of a `Root` and returns its
lines.

`oomd.json_config.JsonConfigParser().parse(text)` builds a `Root` from JSON
text. It accepts `//` and `/* */` comments. Text that is not valid JSON
raises `ConfigParseError`, which is a subclass of `ValueError`.

```json
{
  "rulesets": [
    {
      "name": "my first ruleset",
      "silence-logs": "engine,plugins",
      "post_action_delay": "10",
      "prekill_hook_timeout": "40",
      "drop-in": {"detectors": true, "actions": false, "disable-on-drop-in": true},
      "detectors": [
        ["group1",
          {"name": "pressure_rising_beyond",
           "args": {"cgroup": "workload.slice", "resource": "memory", "threshold": 5}}]
      ],
      "actions": [
        {"name": "kill_by_memory_size_or_growth", "args": {"cgroup": "system.slice"}}
      ]
    }
  ],
  "prekill_hooks": [
    {"name": "hypothetical_prekill_hook"}
  ]
}
```

Plugin arguments are stored as strings. Numbers and booleans are converted.

## Plugins

`oomd.plugin` provides the plugin interfaces.

`BasePlugin` is the base for detectors and actions:

- Implement `init(args, context)`. Raise `PluginInitError` for bad arguments.
- Implement `run(context)`, which returns a `PluginRet`.
- Optionally override `prerun(context)`.

`PrekillHook` is the base for prekill hooks:

- Its `init` reads the required, comma-separated `cgroup` argument into
  cgroup patterns.
- `can_run_on_cgroup(cgroup)` matches a cgroup against those patterns.
- Subclasses implement `fire(cgroup, action_context)`, which returns a
  `PrekillHookInvocation`.

`PluginRegistry` maps names to factories:

- `register(name, factory)` adds a factory.
- `create(name)` builds a plugin and raises `KeyError` for an unknown name.
- `name in registry` tests whether a name is registered.

## Building and running an engine

```python
from oomd.detector_group import DetectorGroup
from oomd.engine import Engine
from oomd.plugin import BasePlugin, PluginConstructionContext, PluginRet
from oomd.ruleset import RunContext, Ruleset


class AlwaysContinue(BasePlugin):
    def init(self, args, context):
        pass

    def run(self, context):
        return PluginRet.CONTINUE


context = PluginConstructionContext("/sys/fs/cgroup")
detector, action = AlwaysContinue(), AlwaysContinue()
for plugin in (detector, action):
    plugin.init({}, context)

ruleset = Ruleset("rs", [DetectorGroup("dg", [detector])], [action],
                  post_action_delay=0)
engine = Engine([ruleset], [])

run_context = RunContext()
engine.prerun(run_context)
engine.run_once(run_context)
```

When an action returns `STOP`, the ruleset does not run its actions again
until `post_action_delay` seconds have passed. The default delay is 15
seconds. `Ruleset.pause_actions(duration)` lets a plugin set its own pause
instead.

`silenced_logs` takes `LogSources` flags from `oomd.types`:

- `ENGINE` mutes the ruleset's own log lines.
- `PLUGINS` disables logging while plugins run.

## Drop-in rulesets and prekill hooks

To prepare a drop-in ruleset, call `Ruleset.merge_with_drop_in(other)` on a
ruleset built like its base. This takes over the detector groups or actions
of `other`. It raises `ValueError` if the base ruleset does not allow that
override.

Apply and remove drop-ins through the engine:

- `Engine.add_drop_in_config(tag, DropInUnit(...))` adds rulesets and
  prekill hooks under a tag.
- `Engine.add_drop_in_ruleset(tag, ruleset)` adds a single ruleset.
- `Engine.remove_drop_in_config(tag)` removes everything added under the tag.

Drop-in rulesets behave as follows:

- They run before their base ruleset, newest first.
- A base ruleset with `disable_on_drop_in` stops running while any drop-in
  targets it.
- If a drop-in ruleset targets a name that is not in the engine, `add_*`
  returns `False`.

`Engine.fire_prekill_hook(cgroup, run_context)` fires the first hook that may
run on the cgroup, and returns its invocation or `None`. Hooks from the most
recent drop-in are tried first, and the base config's hooks are tried last,
in their configured order.

`Engine.stats` counts the `CoreStats` keys `oomd.dropin.added` and
`oomd.dropin.fired`.

## Cgroup paths

`oomd.cgroup_path.CgroupPath(cgroup_fs, path)` joins a cgroup filesystem
root with a relative path. It provides:

- the `absolute_path`, `relative_path`, `relative_path_parts` and
  `cgroup_fs` properties;
- `get_parent()`, which raises `ValueError` at the root, and
  `get_child(path)`;
- `resolve_wildcard()`, which expands a glob to existing directories;
- `has_descendant_with_prefix_matching(pattern)`, where a `*` path component
  matches any single component.

## What this package does not do

- It has no compiler that turns a parsed `Root` into an `Engine`. The
  rulesets, detector groups and plugins must be built and wired together in
  your own code, as shown above.
- It does not watch a directory for drop-in files.
- It ships no command-line program or daemon loop.
- It has no built-in detector or action plugins. The plugin names in the
  JSON example stand for plugins you provide.