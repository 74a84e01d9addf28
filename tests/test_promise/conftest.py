import typing as ty

import pytest

from thds.promise import Reason
from thds.promise.deferred import CALLBACK_ERRORS, STRICT_SETTLEMENT


@pytest.fixture
def epic_fail() -> Reason:
    return Reason("EPIC FAIL", 666)


@pytest.fixture(autouse=True)
def default_settlement_config() -> ty.Iterator[None]:
    # env vars could otherwise change the defaults underneath the tests.
    with STRICT_SETTLEMENT.set_local(False), CALLBACK_ERRORS.set_local("log"):
        yield
