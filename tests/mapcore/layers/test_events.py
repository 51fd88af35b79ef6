"""Tests for ToggleEvents dispatch and subscription."""

import asyncio

import pytest

from mapcore.layers import ToggleEvent, ToggleEvents


@pytest.mark.unit
class TestToggleEvents:

    @pytest.mark.anyio
    async def test_handlers_receive_event_in_subscription_order(self):
        events = ToggleEvents()
        calls = []

        async def first(event):
            calls.append(("first", event))

        async def second(event):
            calls.append(("second", event))

        events.on_toggle(first)
        events.on_toggle(second)
        returned = await events.dispatch("flood_riskzone", True)

        expected = ToggleEvent(layer_id="flood_riskzone", on=True)
        assert returned == expected
        assert calls == [("first", expected), ("second", expected)]

    @pytest.mark.anyio
    async def test_unsubscribe(self):
        events = ToggleEvents()
        calls = []

        async def handler(event):
            calls.append(event.layer_id)

        unsubscribe = events.on_toggle(handler)
        await events.dispatch("a", True)
        unsubscribe()
        unsubscribe()
        await events.dispatch("b", True)
        assert calls == ["a"]

    @pytest.mark.anyio
    async def test_handler_error_propagates(self):
        events = ToggleEvents()
        later = []

        async def broken(event):
            raise KeyError(event.layer_id)

        async def after(event):
            later.append(event)

        events.on_toggle(broken)
        events.on_toggle(after)
        with pytest.raises(KeyError):
            await events.dispatch("x", False)
        assert later == []

    @pytest.mark.anyio
    async def test_dispatches_do_not_interleave(self):
        events = ToggleEvents()
        trace = []

        async def slow(event):
            trace.append(f"start {event.layer_id}")
            await asyncio.sleep(0.01)
            trace.append(f"end {event.layer_id}")

        events.on_toggle(slow)
        await asyncio.gather(events.dispatch("a", True), events.dispatch("b", True))
        assert trace == ["start a", "end a", "start b", "end b"]

    @pytest.mark.anyio
    async def test_dispatch_without_handlers(self):
        events = ToggleEvents()
        event = await events.dispatch("a", False)
        assert event.on is False
