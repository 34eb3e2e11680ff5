from __future__ import annotations

import threading

from rbr.output.console import MockConsole, PrefixedConsole, Style


def test_mock_console_records_styles() -> None:
    console = MockConsole()
    console.success("done")
    console.error("broken")
    console.warning("careful")
    console.info("fyi")
    console.print("plain")

    assert console.messages == [
        "OK done",
        "error: broken",
        "warning: careful",
        "info: fyi",
        "plain",
    ]
    assert console.has_error()


def test_prefixed_console_tags_every_line() -> None:
    inner = MockConsole()
    console = PrefixedConsole(inner, "macos")
    console.print("cargo build", Style.DIM)
    console.success("packaged")
    console.newline()

    assert inner.outputs[0].message == "[macos] cargo build"
    assert inner.outputs[0].style == Style.DIM
    assert inner.outputs[1].message == "OK [macos] packaged"
    assert inner.outputs[2].message == ""


def test_mock_console_is_thread_safe() -> None:
    console = MockConsole()

    def write(prefix: str) -> None:
        branch = PrefixedConsole(console, prefix)
        for i in range(200):
            branch.print(str(i))

    threads = [threading.Thread(target=write, args=(p,)) for p in ("linux", "windows", "macos")]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    assert len(console.outputs) == 600
    assert len(console.find("[windows] ")) == 200
