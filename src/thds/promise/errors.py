"""Exceptions raised by the library itself.

A rejection Reason is application data and never appears here.
"""


class DoubleSettlementError(RuntimeError):
    """Raised on a repeat resolve/reject, but only when strict settlement is configured."""


class CallbackError(RuntimeError):
    """One or more listeners raised while being notified.

    All listeners in the dispatch still ran; `errors` holds every exception
    raised, in the order they were raised, and the first is chained as __cause__.
    """

    def __init__(self, msg: str, errors: list):
        super().__init__(msg)
        self.errors = errors
