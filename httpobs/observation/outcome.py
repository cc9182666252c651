from __future__ import annotations

from enum import Enum

from httpobs.observation.keyvalues import KeyValue, LowCardinalityKeyNames


class HttpOutcome(str, Enum):
    SUCCESS = "SUCCESS"
    REDIRECTION = "REDIRECTION"
    CLIENT_ERROR = "CLIENT_ERROR"
    SERVER_ERROR = "SERVER_ERROR"
    UNKNOWN = "UNKNOWN"

    @classmethod
    def for_status(cls, status: int | None) -> HttpOutcome:
        return classify(aborted=False, status=status)

    def as_key_value(self) -> KeyValue:
        return KeyValue.of(LowCardinalityKeyNames.OUTCOME, self.value)


_SERIES: tuple[tuple[int, int, HttpOutcome], ...] = (
    (200, 299, HttpOutcome.SUCCESS),
    (300, 399, HttpOutcome.REDIRECTION),
    (400, 499, HttpOutcome.CLIENT_ERROR),
    (500, 599, HttpOutcome.SERVER_ERROR),
)


def classify(aborted: bool, status: int | None) -> HttpOutcome:
    """Map the terminal state of an exchange to its outcome category.

    Never raises: anything that is not a plain ``int`` status counts as absent.
    """

    if aborted:
        return HttpOutcome.UNKNOWN
    if status is None or isinstance(status, bool) or not isinstance(status, int):
        return HttpOutcome.UNKNOWN

    for low, high, outcome in _SERIES:
        if low <= status <= high:
            return outcome
    return HttpOutcome.UNKNOWN
