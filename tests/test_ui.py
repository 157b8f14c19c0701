import io

from rich.console import Console

from models import PortResult, PortState, Protocol
from ui import ConsoleObserver, ProgressUI

RESULT = PortResult(53, Protocol.UDP, "DNS (Domain Name System)", PortState.OPEN)


def test_console_observer_output():
    out, err = io.StringIO(), io.StringIO()
    obs = ConsoleObserver(out, err)
    obs.on_progress(53, 50.0)
    obs.on_result(RESULT)
    obs.on_error("Error scanning TCP port 9: boom")
    obs.on_complete([RESULT])
    text = out.getvalue()
    assert "\rScanning port 53... progress: 50.00%" in text
    assert "Port 53 (UDP) open - DNS (Domain Name System)" in text
    assert "Scan complete." in text
    assert "boom" in err.getvalue()


def test_progress_ui_tracks_events_and_renders():
    ui = ProgressUI("192.0.2.1", total_tasks=4)
    ui.on_progress(52, 25.0)
    ui.on_progress(53, 50.0)
    ui.on_result(RESULT)
    ui.on_error("oops")
    ui.on_complete([RESULT])
    assert ui.tasks_done == 2
    assert ui.percentage == 50.0
    assert ui.results == [RESULT]
    assert ui.errors == ["oops"]
    assert ui.finished

    console = Console(file=io.StringIO(), width=120)
    console.print(ui._render())
    rendered = console.file.getvalue()
    assert "192.0.2.1" in rendered
    assert "Tasks: 2/4" in rendered
    assert "DNS (Domain Name System)" in rendered
