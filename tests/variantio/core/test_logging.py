"""Tests for the structured logging facade."""

from __future__ import annotations

import json

import pytest
from structlog.testing import capture_logs

from variantio.core.logging import LogConfig, LogEvents, LogFormat, UnifiedLogger


@pytest.mark.unit
def test_log_event_names_are_dotted() -> None:
    assert LogEvents.WRITER_BUILD_START == "writer.build.start"
    assert LogEvents.PIPELINE_LAYER_APPLIED == "pipeline.layer.applied"
    assert LogEvents.WRITER_INDEX_UNSUPPORTED == "writer.index.unsupported_stream"
    assert str(LogEvents.CLI_RUN_ERROR) == "cli.run.error"


@pytest.mark.unit
def test_get_binds_context() -> None:
    with capture_logs() as logs:
        UnifiedLogger.get("variantio.test", component="builder").info("sample.event", records=3)

    assert logs == [
        {"component": "builder", "records": 3, "event": "sample.event", "log_level": "info"}
    ]


@pytest.mark.unit
def test_json_output_carries_component(capfd: pytest.CaptureFixture[str]) -> None:
    UnifiedLogger.configure(LogConfig(level="INFO", format=LogFormat.JSON))

    UnifiedLogger.get("variantio.test", component="pipeline").info(
        LogEvents.PIPELINE_LAYER_APPLIED, layer="md5"
    )

    captured = capfd.readouterr()
    payload = json.loads(captured.err.strip().splitlines()[-1])
    assert payload["message"] == "pipeline.layer.applied"
    assert payload["component"] == "pipeline"
    assert payload["layer"] == "md5"
    assert payload["level"] == "info"


@pytest.mark.unit
def test_missing_component_is_flagged(capfd: pytest.CaptureFixture[str]) -> None:
    UnifiedLogger.configure(LogConfig(level="INFO", format=LogFormat.JSON))

    UnifiedLogger.get("variantio.test").info("bare.event")

    payload = json.loads(capfd.readouterr().err.strip().splitlines()[-1])
    assert payload["missing_context"] == ["component"]


@pytest.mark.unit
def test_level_filter_drops_debug(capfd: pytest.CaptureFixture[str]) -> None:
    UnifiedLogger.configure(LogConfig(level="WARNING", format=LogFormat.KEY_VALUE))

    log = UnifiedLogger.get("variantio.test", component="builder")
    log.debug("hidden.event")
    log.warning("shown.event")

    err = capfd.readouterr().err
    assert "hidden.event" not in err
    assert "level='warning' component='builder' message='shown.event'" in err
