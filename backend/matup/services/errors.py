"""
League command errors.

Services raise these before touching the store; routes translate them into
HTTP responses using status_code. The message always names the precondition
that failed.
"""


class LeagueError(Exception):
    """Base class for rejected league commands"""

    status_code = 400


class ValidationError(LeagueError):
    """Malformed or missing input"""

    status_code = 400


class AuthorizationError(LeagueError):
    """Caller lacks the required league role or fixture side"""

    status_code = 403


class NotFoundError(LeagueError):
    """Unknown league, fixture, session, run or submission"""

    status_code = 404


class StateConflictError(LeagueError):
    """Existing state forbids the command (schedule exists, terminal status, ...)"""

    status_code = 409
