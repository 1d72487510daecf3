"""Exception hierarchy for pushgate."""


class PushGateError(Exception):
    """Base exception for pushgate errors."""


class MalformedRevision(PushGateError):
    """A revision is not a well-formed object id."""


class GitError(PushGateError):
    """A git query failed."""


class ConfigError(PushGateError):
    """Hook configuration is invalid."""
