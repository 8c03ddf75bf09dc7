"""Exceptions raised by the dependency tracking core."""


class ReloadTrackError(Exception):
    """Base class for errors raised by reloadtrack itself."""


class InvariantViolation(ReloadTrackError, AssertionError):
    """
    Raised when the host integration breaks a bookkeeping invariant, e.g. the
    same entity reported as newly defined by two different files.
    """


class CascadeScopeError(ReloadTrackError, RuntimeError):
    """Raised when cascade-scoped state is consulted outside a cascade."""
