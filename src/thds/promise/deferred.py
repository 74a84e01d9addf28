"""A single-value deferred result.

A Deferred is created Pending by its producer, who later calls exactly one of
`resolve` or `reject`. Consumers register listeners at any point - before
settlement they are queued, after settlement they run immediately. Every
listener runs at most once. `cancel` suppresses all future notification but
does not prevent settlement from being recorded.

```
d: Deferred[str] = Deferred()
d.on_fulfilled(print).on_rejected(report).on_settled(cleanup)
d.resolve("SUCCESS")  # prints SUCCESS, then runs cleanup()
d.on_fulfilled(print)  # already settled: prints SUCCESS immediately
```

Instances are safe to share across threads: the state, the cancellation flag and
the listener registries are guarded by a single lock, and listeners are always
invoked outside of it, on the thread that caused them to run.
"""

import threading
import typing as ty
from dataclasses import dataclass
from functools import partial

from typing_extensions import Self

from thds.core import config, log

from .errors import CallbackError, DoubleSettlementError
from .reason import Reason

T = ty.TypeVar("T")

logger = log.getLogger(__name__)

_CALLBACK_ERROR_POLICIES = ("raise", "log")


def _parse_callback_errors(s: ty.Any) -> str:
    policy = str(s).strip().lower()
    if policy not in _CALLBACK_ERROR_POLICIES:
        raise ValueError(f"callback_errors must be one of {_CALLBACK_ERROR_POLICIES}; got {s!r}")
    return policy


STRICT_SETTLEMENT = config.item(
    "thds.promise.deferred.strict_settlement", default=False, parse=config.tobool
)
# when set, a second resolve/reject raises DoubleSettlementError instead of being ignored.
CALLBACK_ERRORS = config.item(
    "thds.promise.deferred.callback_errors", default="log", parse=_parse_callback_errors
)
# "log" reports listener errors and carries on; "raise" re-raises after every listener has run.


@dataclass(frozen=True)
class Pending:
    pass


@dataclass(frozen=True)
class Fulfilled(ty.Generic[T]):
    value: T


@dataclass(frozen=True)
class Rejected:
    reason: Reason


State = ty.Union[Pending, Fulfilled[T], Rejected]
PENDING = Pending()

SuccessListener = ty.Callable[[T], None]
FailureListener = ty.Callable[[Reason], None]
SettledListener = ty.Callable[[], None]


def _notify(calls: ty.Sequence[ty.Callable[[], None]], event: str) -> None:
    """Every call is made, even if earlier ones raise."""
    errors: ty.List[Exception] = []
    for call in calls:
        try:
            call()
        except Exception as err:
            errors.append(err)
            logger.error("Listener raised", event=event, exc_info=err)
    if errors and CALLBACK_ERRORS() == "raise":
        raise CallbackError(f"{len(errors)} listener(s) raised during {event}", errors) from errors[0]


class Deferred(ty.Generic[T]):
    def __init__(self) -> None:
        self._lock = threading.RLock()
        self._state: State[T] = PENDING
        self._canceled = False
        self._success_listeners: ty.List[SuccessListener[T]] = list()
        self._failure_listeners: ty.List[FailureListener] = list()
        self._settled_listeners: ty.List[SettledListener] = list()

    # registration

    def on_fulfilled(self, callback: SuccessListener[T]) -> Self:
        """Called with the value once this is resolved, or immediately if it already is."""
        with self._lock:
            state = self._state
            if self._canceled:
                return self
            if isinstance(state, Pending):
                self._success_listeners.append(callback)
                return self
            if not isinstance(state, Fulfilled):
                return self
        _notify([partial(callback, state.value)], "on_fulfilled")
        return self

    def on_rejected(self, callback: FailureListener) -> Self:
        """Called with the Reason once this is rejected, or immediately if it already is."""
        with self._lock:
            state = self._state
            if self._canceled:
                return self
            if isinstance(state, Pending):
                self._failure_listeners.append(callback)
                return self
            if not isinstance(state, Rejected):
                return self
        _notify([partial(callback, state.reason)], "on_rejected")
        return self

    def on_settled(self, callback: SettledListener) -> Self:
        """Called with no arguments after either resolution or rejection."""
        with self._lock:
            if self._canceled:
                return self
            if isinstance(self._state, Pending):
                self._settled_listeners.append(callback)
                return self
        _notify([callback], "on_settled")
        return self

    # settlement

    def resolve(self, value: T) -> None:
        outcome = self._settle(Fulfilled(value))
        if outcome is not None:
            success, settled = outcome
            _notify([partial(cb, value) for cb in success] + settled, "resolve")

    def reject(self, reason: Reason) -> None:
        outcome = self._settle(Rejected(reason))
        if outcome is not None:
            failure, settled = outcome
            _notify([partial(cb, reason) for cb in failure] + settled, "reject")

    def _settle(
        self, new_state: ty.Union[Fulfilled[T], Rejected]
    ) -> ty.Optional[ty.Tuple[ty.List[ty.Callable], ty.List[SettledListener]]]:
        """Records the new state and hands back a snapshot of the listeners to notify,
        or None if nobody is to be notified.
        """
        with self._lock:
            if not isinstance(self._state, Pending):
                if STRICT_SETTLEMENT():
                    raise DoubleSettlementError(f"{self!r} cannot be settled again with {new_state}")
                logger.debug("Ignoring repeat settlement", current=self._state, attempted=new_state)
                return None

            self._state = new_state
            outcome_listeners: ty.List[ty.Callable] = list(
                self._success_listeners if isinstance(new_state, Fulfilled) else self._failure_listeners
            )
            settled_listeners = self._settled_listeners
            # whichever registry did not match can now never fire, so everything is dropped.
            self._success_listeners, self._failure_listeners, self._settled_listeners = [], [], []

            if self._canceled:
                logger.debug("Settled after cancellation; not notifying", state=new_state)
                return None
            logger.debug(
                "Settled",
                state=type(new_state).__name__,
                listeners=len(outcome_listeners),
                settled_listeners=len(settled_listeners),
            )
            return outcome_listeners, settled_listeners

    def cancel(self) -> None:
        """Suppress all future notification. Settlement is still recorded.

        Listeners that have already run, or that are running as part of a dispatch
        already in progress, are unaffected.
        """
        with self._lock:
            if self._canceled:
                return
            self._canceled = True
            self._success_listeners, self._failure_listeners, self._settled_listeners = [], [], []
            logger.debug("Canceled", state=type(self._state).__name__)

    # introspection

    @property
    def state(self) -> State[T]:
        return self._state

    @property
    def is_pending(self) -> bool:
        return isinstance(self._state, Pending)

    @property
    def is_settled(self) -> bool:
        return not self.is_pending

    @property
    def is_fulfilled(self) -> bool:
        return isinstance(self._state, Fulfilled)

    @property
    def is_rejected(self) -> bool:
        return isinstance(self._state, Rejected)

    @property
    def is_canceled(self) -> bool:
        return self._canceled

    @property
    def value(self) -> T:
        state = self._state
        if not isinstance(state, Fulfilled):
            raise ValueError(f"{self!r} has no value")
        return state.value

    @property
    def reason(self) -> Reason:
        state = self._state
        if not isinstance(state, Rejected):
            raise ValueError(f"{self!r} has no rejection reason")
        return state.reason

    def __repr__(self) -> str:
        return f"Deferred({self._state!r}, canceled={self._canceled})"


def resolved(value: T) -> Deferred[T]:
    d: Deferred[T] = Deferred()
    d.resolve(value)
    return d


def rejected(reason: Reason) -> Deferred[ty.Any]:
    d: Deferred[ty.Any] = Deferred()
    d.reject(reason)
    return d
