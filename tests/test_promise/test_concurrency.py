import threading
from concurrent.futures import ThreadPoolExecutor

from thds.promise import Deferred, Reason


def test_racing_settlements_notify_exactly_once():
    for _ in range(50):
        d: Deferred[int] = Deferred()
        outcomes = list()
        settled = list()
        d.on_fulfilled(outcomes.append).on_rejected(outcomes.append).on_settled(lambda: settled.append(1))
        barrier = threading.Barrier(8, timeout=10)

        def settle(i: int):
            barrier.wait()
            if i % 2:
                d.resolve(i)
            else:
                d.reject(Reason("race", i))

        with ThreadPoolExecutor(max_workers=8) as executor:
            list(executor.map(settle, range(8)))

        assert len(outcomes) == 1
        assert settled == [1]
        assert d.is_settled


def test_concurrent_registration_and_settlement_calls_every_listener_once():
    d: Deferred[str] = Deferred()
    seen = list()
    lock = threading.Lock()

    def record(value: str):
        with lock:
            seen.append(value)

    def register(_):
        d.on_fulfilled(record)

    with ThreadPoolExecutor(max_workers=10) as executor:
        futs = [executor.submit(register, i) for i in range(100)]
        executor.submit(d.resolve, "SUCCESS")
        futs += [executor.submit(register, i) for i in range(100)]
        for fut in futs:
            fut.result()

    assert seen == ["SUCCESS"] * 200
