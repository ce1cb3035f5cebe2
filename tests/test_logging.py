from pathlib import Path
import sys

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from echo_env.logging import (  # noqa: E402
    _add_module_info,
    _console_renderer,
    configure_logging,
    get_logger,
)


def test_logger_configuration() -> None:
    configure_logging("DEBUG", "console")
    logger = get_logger("echo_env.test")
    assert logger is not None


def test_module_info_strips_package_prefix() -> None:
    event = _add_module_info(None, "info", {"logger": "echo_env.sync", "event": "x"})
    assert event["module"] == "sync"

    event = _add_module_info(None, "info", {"logger": "watchdog.observers", "event": "x"})
    assert event["module"] == "watchdog.observers"


def test_console_renderer_includes_extra_fields() -> None:
    line = _console_renderer(
        None,
        "info",
        {
            "timestamp": "2024-01-01T00:00:00Z",
            "level": "info",
            "module": "sync",
            "logger": "echo_env.sync",
            "event": "Sync finished",
            "added": 2,
        },
    )
    assert "[INFO]" in line
    assert "sync: Sync finished" in line
    assert "added=2" in line
    assert "logger=" not in line
