"""A single-value deferred result with listener callbacks and cancellation."""

from thds.core import meta

from . import deferred, errors, reason  # noqa: F401
from .deferred import Deferred, Fulfilled, Pending, Rejected, rejected, resolved  # noqa: F401
from .errors import CallbackError, DoubleSettlementError  # noqa: F401
from .reason import Reason  # noqa: F401

__version__ = meta.get_version(__name__)
