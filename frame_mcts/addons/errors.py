"""
Errors raised by the planner.

Every error derives from ``PlannerError`` so a host can catch them all at its boundary and fall back
to a default action.
"""


class PlannerError(Exception):
    """Base class of every planner error."""


class InvalidStateError(PlannerError, RuntimeError):
    """The planner was driven out of order (no episode, or an unfinished one restarted)."""


class NoActionAvailableError(PlannerError, LookupError):
    """The root has no child to report, either because it is terminal or because no iteration ran."""


class MalformedCollaboratorError(PlannerError, ValueError):
    """A world model claims to be non-terminal but reports no executable action."""
