import asyncio

from sellkit import __version__
from sellkit.clock import ManualClock
from sellkit.diagnostics import describe_trigger, is_diagnostic_url
from sellkit.page import Page
from sellkit.triggers import TriggerEngine, TriggerKind, TriggerSpec


def _engine(spec):
    return TriggerEngine(
        spec,
        signals=Page(url="https://shop.test/").signals,
        clock=ManualClock(),
        on_activate=lambda spec: None,
        exit_threshold_px=10,
    )


def test_is_diagnostic_url():
    assert is_diagnostic_url("https://shop.test/?debug=true")
    assert is_diagnostic_url("https://shop.test/?a=1&mysellkit_test=true")
    assert not is_diagnostic_url("https://shop.test/?debug=false")
    assert not is_diagnostic_url("https://shop.test/")


def test_describe_trigger_lines():
    assert describe_trigger(None) == "Trigger: not configured"
    assert describe_trigger(_engine(TriggerSpec(TriggerKind.EXIT_INTENT))) == "Exit Intent"
    assert describe_trigger(_engine(TriggerSpec(TriggerKind.MANUAL))) == "Manual Trigger"
    assert describe_trigger(_engine(TriggerSpec(TriggerKind.SCROLL, 50.0))) == "Scroll: 0% / 50%"


def test_status_tracks_time_trigger_progress(make_widget, backend):
    backend.add_offer(trigger_type="time", trigger_value=5, is_live="no")
    clock = ManualClock()
    widget = make_widget(clock=clock, diagnostic=True)
    asyncio.run(widget.init())

    clock.advance(3)
    waiting = widget.status()
    clock.advance(2)
    triggered = widget.status()

    assert waiting.version == __version__
    assert waiting.trigger == "Time: 3s / 5s"
    assert waiting.state == "WAITING"
    assert waiting.surface == "hidden"
    assert waiting.draft is True
    assert waiting.session_id.startswith("msk_debug_")
    assert triggered.state == "TRIGGERED"
    assert triggered.surface == "overlay"
    assert "Draft mode" in triggered.lines()


def test_status_of_scroll_trigger(make_widget, backend):
    backend.add_offer(trigger_type="scroll", trigger_value=50)
    widget = make_widget()
    asyncio.run(widget.init())

    widget.page.scroll(420, 2000, 1000)
    status = widget.status()

    assert status.trigger == "Scroll: 42% / 50%"
    assert status.session_id is None
    assert status.purchased is False
