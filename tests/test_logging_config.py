"""
Тесты форматтеров логов
"""

import json
import logging

from bookworm_client.core.logging_config import ColoredFormatter, JSONFormatter, setup_logging


def make_record(**extra):
    record = logging.LogRecord(
        name="bookworm_client.core.feed_cache",
        level=logging.WARNING,
        pathname=__file__,
        lineno=10,
        msg="Failed to fetch feed page %s",
        args=(2,),
        exc_info=None,
    )
    for key, value in extra.items():
        setattr(record, key, value)
    return record


def test_json_formatter_includes_extra_fields():
    output = json.loads(JSONFormatter().format(make_record(page=2, error_code="NETWORK_ERROR")))

    assert output["message"] == "Failed to fetch feed page 2"
    assert output["level"] == "WARNING"
    assert output["logger"] == "bookworm_client.core.feed_cache"
    assert output["page"] == 2
    assert output["error_code"] == "NETWORK_ERROR"
    assert "args" not in output


def test_colored_formatter_does_not_mutate_record():
    record = make_record()

    text = ColoredFormatter("%(levelname)s %(message)s").format(record)

    assert "Failed to fetch feed page 2" in text
    assert record.levelname == "WARNING"


def test_setup_logging_writes_json_file(tmp_path):
    log_file = tmp_path / "client.log"
    root = logging.getLogger()
    saved_handlers, saved_level = root.handlers[:], root.level
    try:
        setup_logging(level="DEBUG", log_file=str(log_file))
        logging.getLogger("bookworm_client.test").info("hello", extra={"page": 1})
        for handler in root.handlers:
            handler.flush()
    finally:
        for handler in root.handlers:
            handler.close()
        root.handlers = saved_handlers
        root.setLevel(saved_level)

    lines = [json.loads(line) for line in log_file.read_text(encoding="utf-8").splitlines()]
    assert lines[-1]["message"] == "hello"
    assert lines[-1]["page"] == 1
    assert logging.getLogger("urllib3").level == logging.WARNING


def test_json_formatter_redacts_credentials():
    output = json.loads(JSONFormatter().format(make_record(token="secret-jwt", base64_length=1024)))

    assert output["token"] == "***"
    assert output["base64_length"] == 1024
    assert "secret-jwt" not in json.dumps(output)
