from __future__ import annotations


class AutodevError(Exception):
    """Base class for every error raised by autodev."""


class PlanError(AutodevError):
    pass


class InvalidID(PlanError):
    """Task address is malformed (bad root component or non-integer part)."""


class NotFound(PlanError, LookupError):
    """Task address is well formed but points at no task."""


class InvalidState(PlanError, ValueError):
    """State value outside the task state enumeration."""


class RemoteError(AutodevError):
    """Upstream Git hosting API failure."""


class RemoteNotFound(RemoteError):
    pass


class AuthError(RemoteError):
    pass


class PluginError(AutodevError):
    """The indexing plugin could not be called or returned garbage."""


class InvalidOperation(AutodevError, ValueError):
    pass


class LLMError(AutodevError):
    pass
