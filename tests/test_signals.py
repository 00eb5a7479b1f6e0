from __future__ import annotations

from speechtranslator.signals import Signal


def test_signal_delivers_in_subscription_order() -> None:
    sig: Signal[int] = Signal("numbers")
    seen: list[tuple[str, int]] = []
    sig.subscribe(lambda v: seen.append(("a", v)))
    sig.subscribe(lambda v: seen.append(("b", v)))

    sig.emit(1)
    assert seen == [("a", 1), ("b", 1)]
    assert len(sig) == 2


def test_unsubscribe_callable_detaches_listener() -> None:
    sig: Signal[str] = Signal()
    seen: list[str] = []
    unsubscribe = sig.subscribe(seen.append)

    sig.emit("x")
    unsubscribe()
    unsubscribe()
    sig.emit("y")
    assert seen == ["x"]
    assert len(sig) == 0


def test_failing_listener_does_not_block_others() -> None:
    sig: Signal[int] = Signal()
    seen: list[int] = []

    def _boom(_v: int) -> None:
        raise RuntimeError("listener bug")

    sig.subscribe(_boom)
    sig.subscribe(seen.append)
    sig.emit(5)
    assert seen == [5]
