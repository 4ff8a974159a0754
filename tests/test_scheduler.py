"""Tests for the asyncio-backed scheduler and listener lists."""

from __future__ import annotations

import asyncio

import pytest

from rsvp_reader.core.engine import PresentationEngine
from rsvp_reader.core.observers import Observable
from rsvp_reader.core.scheduler import AsyncioScheduler


class TestAsyncioScheduler:
    def test_callback_runs_after_delay(self):
        async def scenario():
            fired = []
            scheduler = AsyncioScheduler()
            task = scheduler.call_later(10, lambda: fired.append("tick"))
            assert not task.cancelled
            await asyncio.sleep(0.05)
            return fired

        assert asyncio.run(scenario()) == ["tick"]

    def test_cancelled_callback_never_runs(self):
        async def scenario():
            fired = []
            task = AsyncioScheduler().call_later(10, lambda: fired.append("tick"))
            task.cancel()
            assert task.cancelled
            await asyncio.sleep(0.05)
            return fired

        assert asyncio.run(scenario()) == []

    def test_explicit_loop(self):
        loop = asyncio.new_event_loop()
        try:
            fired = []
            AsyncioScheduler(loop).call_later(0, lambda: fired.append(1))
            loop.run_until_complete(asyncio.sleep(0.01))
            assert fired == [1]
        finally:
            loop.close()

    def test_requires_running_loop_without_explicit_loop(self):
        with pytest.raises(RuntimeError):
            AsyncioScheduler().call_later(10, lambda: None)

    def test_engine_plays_to_the_end_on_a_loop(self):
        async def scenario():
            engine = PresentationEngine(wpm=1000)
            engine.load(["one", "two", "three."])
            done = asyncio.Event()
            seen = []

            def on_change():
                seen.append(engine.current_index)
                if engine.is_finished:
                    done.set()

            engine.subscribe(on_change)
            engine.play()
            await asyncio.wait_for(done.wait(), timeout=2.0)
            return engine, seen

        engine, seen = asyncio.run(scenario())
        assert engine.is_finished
        assert engine.current_index == 2
        assert not engine.has_pending_tick
        assert seen[-1] == 2


class TestObservable:
    def test_subscribe_is_idempotent(self):
        observable = Observable()
        calls = []

        def listener():
            calls.append(1)

        observable.subscribe(listener)
        observable.subscribe(listener)
        observable.notify()
        assert calls == [1]
        assert observable.listener_count == 1

    def test_unsubscribe_unknown_is_noop(self):
        observable = Observable()
        observable.unsubscribe(lambda: None)
        assert observable.listener_count == 0

    def test_listener_may_unsubscribe_during_notify(self):
        observable = Observable()
        calls = []

        def once():
            calls.append("once")
            observable.unsubscribe(once)

        observable.subscribe(once)
        observable.subscribe(lambda: calls.append("always"))
        observable.notify()
        observable.notify()
        assert calls == ["once", "always", "always"]

    def test_listener_errors_propagate(self):
        observable = Observable()

        def broken():
            raise RuntimeError("boom")

        observable.subscribe(broken)
        with pytest.raises(RuntimeError):
            observable.notify()

    def test_instances_are_independent(self):
        a, b = Observable(), Observable()
        calls = []
        a.subscribe(lambda: calls.append("a"))
        b.notify()
        assert calls == []
