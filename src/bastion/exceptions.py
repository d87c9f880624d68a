"""Exceptions raised by bastion."""


class BastionError(Exception):
    """Base class for all bastion errors."""


class InvalidInputError(BastionError, ValueError):
    """A posture, context or profile payload is malformed."""


class NotFoundError(BastionError, LookupError):
    """A user, device or profile required for an assessment could not be resolved."""

    def __init__(self, kind: str, identifier=None):
        self.kind = kind
        self.identifier = identifier
        if identifier is None:
            message = f"{kind} not found"
        else:
            message = f"{kind} not found: {identifier}"
        super().__init__(message)
