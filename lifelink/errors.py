"""Errors raised by the registries when a command cannot be carried out."""


class LifeLinkError(Exception):
    """Base class for LifeLink errors"""


class ValidationError(LifeLinkError, ValueError):
    """Invalid input; the operation was aborted without changing any state"""


class NotFoundError(LifeLinkError, LookupError):
    """Referenced donor, request or camp does not exist"""

    def __init__(self, kind, identity):
        super().__init__(f"{kind} not found: {identity}")
        self.kind = kind
        self.identity = identity
