from __future__ import annotations


class ObservationError(Exception):
    """Base class for errors raised by httpobs."""


class ContextFrozenError(ObservationError):
    """Raised when an exchange context is modified after ``freeze()``."""

    def __init__(self, field: str) -> None:
        super().__init__(f"Exchange context is frozen; cannot set {field!r}")
        self.field = field


class ConverterError(ObservationError):
    """Raised when a body converter cannot handle the requested type."""


class MessageNotReadableError(ConverterError):
    pass


class MessageNotWritableError(ConverterError):
    pass
