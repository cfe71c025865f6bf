"""Typed failures raised by the relationship graph, profile directory and
recommendations.

All of them are ``ValueError`` subclasses so callers that only care about
"bad input" can keep catching ``ValueError``.
"""


class RelationshipError(ValueError):
    status_code = 400
    message = "Relationship request failed"

    def __init__(self, message: str | None = None):
        super().__init__(message or self.message)


class SelfRelationship(RelationshipError):
    status_code = 400
    message = "You cannot send a friend request to yourself"


class DuplicateRelationship(RelationshipError):
    # Covers both an accepted and a pending edge
    status_code = 409
    message = "Already friends or a request is pending"


class NotFound(RelationshipError):
    status_code = 404
    message = "Not found"


class NotAuthorized(RelationshipError):
    status_code = 403
    message = "Not allowed to act on this friend request"


class InvalidState(RelationshipError):
    status_code = 409
    message = "Friend request is not in a valid state for this action"
