from __future__ import annotations

import threading

import pytest

from speechtranslator.live.mailbox import SerialMailbox


def test_inline_mailbox_runs_nested_posts_in_order() -> None:
    mb = SerialMailbox(threaded=False)
    seen: list[str] = []

    def _outer() -> None:
        seen.append("outer-start")
        mb.post(lambda: seen.append("nested"))
        seen.append("outer-end")

    mb.post(_outer)
    mb.post(lambda: seen.append("after"))
    assert seen == ["outer-start", "outer-end", "nested", "after"]


def test_call_returns_value_and_reraises() -> None:
    mb = SerialMailbox(threaded=False)
    assert mb.call(lambda: 41 + 1) == 42

    def _boom() -> None:
        raise ValueError("bad")

    with pytest.raises(ValueError, match="bad"):
        mb.call(_boom)


def test_call_from_inside_a_job_runs_directly() -> None:
    mb = SerialMailbox(threaded=False)
    assert mb.call(lambda: mb.call(lambda: "inner")) == "inner"


def test_failing_job_does_not_stop_the_mailbox() -> None:
    mb = SerialMailbox(threaded=False)
    seen: list[int] = []

    def _boom() -> None:
        raise RuntimeError("job bug")

    mb.post(_boom)
    mb.post(lambda: seen.append(1))
    assert seen == [1]


def test_threaded_mailbox_serialises_posts_from_many_threads() -> None:
    mb = SerialMailbox(name="test-mailbox")
    mb.start()
    try:
        assert mb.running
        seen: list[int] = []
        threads_seen: set[str] = set()

        def _job(i: int) -> None:
            seen.append(i)
            threads_seen.add(threading.current_thread().name)

        workers = [
            threading.Thread(target=lambda base=base: [mb.post(lambda i=i: _job(i)) for i in range(base, base + 50)])
            for base in (0, 100, 200)
        ]
        for w in workers:
            w.start()
        for w in workers:
            w.join()
        mb.call(lambda: None, timeout=5.0)

        assert sorted(seen) == list(range(0, 50)) + list(range(100, 150)) + list(range(200, 250))
        assert threads_seen == {"test-mailbox"}
        assert mb.call(mb.on_mailbox_thread, timeout=5.0) is True
        assert mb.on_mailbox_thread() is False
    finally:
        mb.close()
    assert mb.closed
    assert not mb.running


def test_closed_mailbox_ignores_new_work() -> None:
    mb = SerialMailbox(threaded=False)
    mb.close()
    seen: list[int] = []
    mb.post(lambda: seen.append(1))
    assert mb.call(lambda: 2) is None
    assert seen == []
