"""Out-of-memory rule engine core: config IR, JSON parser, plugins, rulesets and engine."""

__version__ = "0.1.0"