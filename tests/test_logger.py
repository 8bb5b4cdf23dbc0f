import json
import logging

from utils.logger import JsonFormatter, bind_run


def _record(msg="hello", level=logging.INFO, extra_fields=None):
    record = logging.LogRecord("docanswer.test", level, __file__, 10, msg, None, None, func="fn")
    if extra_fields is not None:
        record.extra_fields = extra_fields
    return record


def test_json_formatter_promotes_correlation_ids():
    line = JsonFormatter().format(_record(extra_fields={"index": "docs", "run_id": "r1"}))
    entry = json.loads(line)

    assert list(entry)[:4] == ["ts", "level", "logger", "run_id"]
    assert entry["run_id"] == "r1"
    assert entry["index"] == "docs"
    assert entry["message"] == "hello"
    assert entry["ts"].endswith("Z")
    assert "where" not in entry


def test_json_formatter_adds_location_for_warnings():
    entry = json.loads(JsonFormatter().format(_record(level=logging.WARNING)))
    assert entry["where"].endswith("fn:10")


class _Capture(logging.Handler):
    def __init__(self):
        super().__init__(logging.DEBUG)
        self.records = []

    def emit(self, record):
        self.records.append(record)


def test_bind_run_merges_fields():
    logger = logging.getLogger("docanswer.test.bind")
    logger.setLevel(logging.DEBUG)
    capture = _Capture()
    logger.addHandler(capture)
    try:
        run_log = bind_run(logger, run_id="r1", session_id=None)
        run_log.info("step", extra={"extra_fields": {"documents": 3}})
    finally:
        logger.removeHandler(capture)

    assert capture.records[0].extra_fields == {"run_id": "r1", "documents": 3}
