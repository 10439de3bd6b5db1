"""Tests for structured logging."""

import json
import logging
import sys

from mindvault.core.logging import CloudLoggingFormatter, upload_id_context


def make_record(msg="Upload session registered", extra=None, exc_info=None):
    record = logging.LogRecord(
        name="mindvault.services.upload_sessions",
        level=logging.INFO,
        pathname=__file__,
        lineno=10,
        msg=msg,
        args=(),
        exc_info=exc_info,
    )
    for key, value in (extra or {}).items():
        setattr(record, key, value)
    return record


def test_format_is_single_line_json():
    """Test format is single line json."""
    output = CloudLoggingFormatter().format(make_record(extra={"chunk_count": 3}))

    assert "\n" not in output
    entry = json.loads(output)
    assert entry["severity"] == "INFO"
    assert entry["message"] == "Upload session registered"
    assert entry["chunk_count"] == 3
    assert entry["timestamp"].endswith("Z")


def test_format_includes_upload_id_from_context():
    """Test format includes upload id from context."""
    token = upload_id_context.set("1700000000000abc")
    try:
        entry = json.loads(CloudLoggingFormatter().format(make_record()))
    finally:
        upload_id_context.reset(token)

    assert entry["upload_id"] == "1700000000000abc"


def test_format_includes_exception():
    """Test format includes exception."""
    try:
        raise ValueError("bad chunk")
    except ValueError:
        record = make_record(msg="failed", exc_info=sys.exc_info())

    entry = json.loads(CloudLoggingFormatter().format(record))

    assert entry["exception_type"] == "ValueError"
    assert entry["exception_message"] == "bad chunk"
    assert "Traceback" in entry["exception"]
