import json
import logging

import pytest
from PIL import Image

from qrstyle.logging import AUDIT, ConsoleFormatter, JsonFormatter, audit, get_logger, stage, trace


def test_audit_record_carries_event_and_context(caplog):
    log = get_logger("tests")
    with caplog.at_level(AUDIT, logger="qrstyle"):
        audit("sample.event", logger=log, size="10x10", ok=True)
    record = caplog.records[-1]
    assert record.levelname == "AUDIT"
    assert record.event == "sample.event"
    assert record.ctx == {"size": "10x10", "ok": True}


def test_trace_summarises_images_and_logs_errors(caplog):
    @trace(logger_name="tests")
    def boom(image):
        raise RuntimeError("bad")

    with caplog.at_level(logging.DEBUG, logger="qrstyle"):
        with pytest.raises(RuntimeError):
            boom(Image.new("RGBA", (4, 3)))

    enter, error = caplog.records[-2], caplog.records[-1]
    assert enter.event == "boom.enter"
    assert enter.ctx["args"] == ["<Image RGBA 4x3>"]
    assert error.event == "boom.error"
    assert error.levelno == logging.ERROR


def test_formatters_render_structured_records():
    log = get_logger("tests")
    record = log.makeRecord(log.name, AUDIT, "", 0, "", (), None)
    record.event = "qr.encoded"
    record.ctx = {"version": 2}

    entry = json.loads(JsonFormatter().format(record))
    assert entry["event"] == "qr.encoded"
    assert entry["ctx"] == {"version": 2}
    assert entry["src"] == "qrstyle.tests"

    line = ConsoleFormatter(use_color=False).format(record)
    assert "AUDIT" in line and "qr.encoded" in line and "version=2" in line


def test_stage_emits_timed_event(caplog):
    with caplog.at_level(AUDIT, logger="qrstyle"):
        with stage("shape", get_logger("tests"), shape="dots") as ctx:
            ctx["painted"] = 12
    record = caplog.records[-1]
    assert record.event == "stage.shape"
    assert record.ctx == {"shape": "dots", "painted": 12}
    assert record.duration_ms >= 0


def test_stage_is_silent_when_the_body_fails(caplog):
    with caplog.at_level(AUDIT, logger="qrstyle"):
        with pytest.raises(ValueError):
            with stage("gradient", get_logger("tests")):
                raise ValueError("bad colour")
    assert not [r for r in caplog.records if getattr(r, "event", "") == "stage.gradient"]


def test_render_reports_each_stage(caplog):
    from qrstyle.engine import render
    from qrstyle.styles import FrameSpec, StyleRequest

    with caplog.at_level(AUDIT, logger="qrstyle"):
        render("stage events", StyleRequest(shape="leaf", frame=FrameSpec(text="Hi")))
    events = [getattr(r, "event", "") for r in caplog.records]
    assert "stage.shape" in events
    assert "stage.frame" in events
    assert "qr.rendered" in events
