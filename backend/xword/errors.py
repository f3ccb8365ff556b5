"""Errors raised at the ordering authority boundary.

Reducers never raise: an illegal update simply leaves the state unchanged.
These exceptions cover proposals that are rejected before reaching a
reducer, and are reported back to the proposing client.
"""


class GameEventError(Exception):
    """Base class for rejected proposals."""
    status_code = 400

    def __init__(self, message, gid=None):
        super().__init__(message)
        self.message = message
        self.gid = gid

    def to_dict(self):
        return {'error': self.message, 'gid': self.gid}


class MalformedEventError(GameEventError):
    """Unknown event type, or params that don't match the type's shape."""


class SessionNotCreatedError(GameEventError):
    """The first event of a session must be `create`."""


class SessionAlreadyCreatedError(GameEventError):
    status_code = 409
