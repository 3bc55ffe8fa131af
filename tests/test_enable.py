"""Tests for the optimistic enable/disable controller."""

import asyncio

import pytest

from alternator_console.enable import (
    HEADER_DISABLED_COLOR,
    HEADER_ENABLED_COLOR,
    EnableController,
)
from alternator_console.models import Confirmed, Pending
from alternator_console.notifications import Severity


def _messages(notifier):
    return [(item.message, item.severity) for item in notifier.active]


@pytest.mark.asyncio
async def test_load_applies_device_state(transport, sink, notifier):
    transport.respond_ok("GET", "/enable", {"enabled": True})
    controller = EnableController(transport, sink, notifier)

    assert await controller.load() is True

    assert controller.state == Confirmed(True)
    assert sink.checked["enableToggle"] is True
    assert sink.texts["enableStatus"] == "Status: Enabled"
    assert sink.texts["header_color"] == HEADER_ENABLED_COLOR
    assert notifier.active == []


@pytest.mark.asyncio
async def test_load_failure_notifies_and_keeps_state(transport, sink, notifier):
    transport.respond_error("GET", "/enable")
    controller = EnableController(transport, sink, notifier)

    assert await controller.load() is False

    assert controller.state == Confirmed(False)
    assert "enableToggle" not in sink.checked
    assert _messages(notifier) == [("Failed to fetch enable state", Severity.ERROR)]
    notifier.clear()


@pytest.mark.asyncio
async def test_toggle_updates_display_before_request_resolves(transport, sink, notifier):
    gate = transport.hold("POST", "/enable")
    transport.respond_ok("POST", "/enable")
    controller = EnableController(transport, sink, notifier)

    task = controller.toggle(True)

    # Same task turn: nothing has been awaited yet.
    assert sink.checked["enableToggle"] is True
    assert sink.texts["enableStatus"] == "Status: Enabled"
    assert controller.state == Pending(optimistic=True, previous=False)

    gate.set()
    await task

    assert controller.state == Confirmed(True)
    assert transport.calls_for("POST", "/enable")[0].body == {"enabled": True}
    assert _messages(notifier) == [("Enabled", Severity.INFO)]
    notifier.clear()


@pytest.mark.asyncio
async def test_disable_success_emits_warning(transport, sink, notifier):
    transport.respond_ok("GET", "/enable", {"enabled": True})
    transport.respond_ok("POST", "/enable")
    controller = EnableController(transport, sink, notifier)
    await controller.load()

    await controller.toggle(False)

    assert controller.state == Confirmed(False)
    assert sink.texts["header_color"] == HEADER_DISABLED_COLOR
    assert _messages(notifier) == [("Disabled", Severity.WARNING)]
    notifier.clear()


@pytest.mark.asyncio
async def test_failed_toggle_rolls_back(transport, sink, notifier):
    transport.respond_error("POST", "/enable", kind="status", status=500)
    controller = EnableController(transport, sink, notifier)

    task = controller.toggle(True)
    assert sink.checked["enableToggle"] is True

    await task

    assert controller.state == Confirmed(False)
    assert sink.checked["enableToggle"] is False
    assert sink.texts["enableStatus"] == "Status: Disabled"
    assert sink.texts["header_color"] == HEADER_DISABLED_COLOR
    assert _messages(notifier) == [("Failed to change enable state", Severity.ERROR)]
    notifier.clear()


@pytest.mark.asyncio
async def test_only_one_submission_in_flight(transport, sink, notifier):
    first_gate = transport.hold("POST", "/enable")
    transport.respond_ok("POST", "/enable")
    transport.respond_ok("POST", "/enable")
    controller = EnableController(transport, sink, notifier)

    task = controller.toggle(True)
    await asyncio.sleep(0)
    assert len(transport.calls_for("POST", "/enable")) == 1

    second = controller.toggle(False)
    assert second is task
    assert sink.checked["enableToggle"] is False
    await asyncio.sleep(0)
    assert len(transport.calls_for("POST", "/enable")) == 1

    first_gate.set()
    await task

    bodies = [call.body for call in transport.calls_for("POST", "/enable")]
    assert bodies == [{"enabled": True}, {"enabled": False}]
    assert controller.state == Confirmed(False)
    assert sink.checked["enableToggle"] is False
    notifier.clear()


@pytest.mark.asyncio
async def test_display_stays_optimistic_while_newer_toggle_is_queued(
    transport, sink, notifier
):
    first_gate = transport.hold("POST", "/enable")
    second_gate = transport.hold("POST", "/enable")
    transport.respond_ok("POST", "/enable")
    transport.respond_ok("POST", "/enable")
    controller = EnableController(transport, sink, notifier)

    task = controller.toggle(True)
    await asyncio.sleep(0)
    controller.toggle(False)

    first_gate.set()
    await asyncio.sleep(0.01)

    # First request confirmed True, but the queued False is what the user sees.
    assert controller.confirmed is True
    assert controller.state == Pending(optimistic=False, previous=True)
    assert sink.checked["enableToggle"] is False

    second_gate.set()
    await task
    assert controller.state == Confirmed(False)
    notifier.clear()


@pytest.mark.asyncio
async def test_superseded_toggles_collapse(transport, sink, notifier):
    first_gate = transport.hold("POST", "/enable")
    transport.respond_ok("POST", "/enable")
    controller = EnableController(transport, sink, notifier)

    task = controller.toggle(True)
    await asyncio.sleep(0)
    controller.toggle(False)
    controller.toggle(True)

    first_gate.set()
    await task

    # The queued True matches the value just confirmed, so nothing more is sent.
    assert len(transport.calls_for("POST", "/enable")) == 1
    assert controller.state == Confirmed(True)
    assert sink.checked["enableToggle"] is True
    notifier.clear()


@pytest.mark.asyncio
async def test_queued_toggle_is_sent_after_failed_request(transport, sink, notifier):
    first_gate = transport.hold("POST", "/enable")
    transport.respond_error("POST", "/enable")
    transport.respond_ok("POST", "/enable")
    transport.respond_ok("GET", "/enable", {"enabled": True})
    controller = EnableController(transport, sink, notifier)
    await controller.load()

    task = controller.toggle(False)
    await asyncio.sleep(0)
    controller.toggle(True)
    controller.toggle(False)

    first_gate.set()
    await task

    # The failed False rolled back to True; the queued False is then retried.
    bodies = [call.body for call in transport.calls_for("POST", "/enable")]
    assert bodies == [{"enabled": False}, {"enabled": False}]
    assert controller.state == Confirmed(False)
    messages = [message for message, _ in _messages(notifier)]
    assert messages == ["Failed to change enable state", "Disabled"]
    notifier.clear()


@pytest.mark.asyncio
async def test_load_during_pending_toggle_moves_rollback_target(transport, sink, notifier):
    post_gate = transport.hold("POST", "/enable")
    transport.respond_error("POST", "/enable")
    transport.respond_ok("GET", "/enable", {"enabled": True})
    controller = EnableController(transport, sink, notifier)

    task = controller.toggle(False)
    await asyncio.sleep(0)
    await controller.load()

    assert controller.state == Pending(optimistic=False, previous=True)
    assert sink.checked["enableToggle"] is False

    post_gate.set()
    await task

    assert controller.state == Confirmed(True)
    assert sink.checked["enableToggle"] is True
    notifier.clear()


@pytest.mark.asyncio
async def test_read_sent_before_confirmed_toggle_is_discarded(transport, sink, notifier):
    get_gate = transport.hold("GET", "/enable")
    transport.respond_ok("GET", "/enable", {"enabled": False})
    transport.respond_ok("POST", "/enable")
    controller = EnableController(transport, sink, notifier)

    load = asyncio.create_task(controller.load())
    await asyncio.sleep(0)
    await controller.toggle(True)
    assert controller.state == Confirmed(True)

    get_gate.set()
    assert await load is True

    assert controller.state == Confirmed(True)
    assert controller.confirmed is True
    assert sink.checked["enableToggle"] is True
    assert sink.texts["header_color"] == HEADER_ENABLED_COLOR

    # Reads issued after the acknowledgement still apply.
    transport.respond_ok("GET", "/enable", {"enabled": False})
    await controller.load()
    assert controller.state == Confirmed(False)
    notifier.clear()


@pytest.mark.asyncio
async def test_wait_idle_returns_once_queue_is_drained(transport, sink, notifier):
    gate = transport.hold("POST", "/enable")
    transport.respond_ok("POST", "/enable")
    transport.respond_ok("POST", "/enable")
    controller = EnableController(transport, sink, notifier)

    controller.toggle(True)
    waiter = asyncio.create_task(controller.wait_idle())
    await asyncio.sleep(0.01)
    assert not waiter.done()

    controller.toggle(False)
    gate.set()
    await asyncio.wait_for(waiter, timeout=1.0)

    assert controller.in_flight is False
    assert controller.state == Confirmed(False)
    assert len(transport.calls_for("POST", "/enable")) == 2
    notifier.clear()


@pytest.mark.asyncio
async def test_aclose_abandons_in_flight_submission(transport, sink, notifier):
    transport.hold("POST", "/enable")
    controller = EnableController(transport, sink, notifier)

    controller.toggle(True)
    await asyncio.sleep(0)
    await controller.aclose()

    assert controller.in_flight is False
