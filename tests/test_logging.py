"""Tests for structured log output."""

import logging

import orjson

from medisync.core.logging import JSONFormatter, get_contextual_logger


class CaptureHandler(logging.Handler):
    def __init__(self):
        super().__init__(logging.DEBUG)
        self.lines: list[str] = []
        self.setFormatter(JSONFormatter())

    def emit(self, record):
        self.lines.append(self.format(record))


def test_json_line_carries_run_and_position():
    handler = CaptureHandler()
    base = logging.getLogger("medisync.test_json")
    base.setLevel(logging.DEBUG)
    base.addHandler(handler)
    try:
        log = get_contextual_logger("test_json", run_id="run-7").with_position(3, 4)
        log.info("Patient créé", extra={"action": "created"})
    finally:
        base.removeHandler(handler)

    entry = orjson.loads(handler.lines[0])
    assert entry["message"] == "Patient créé"
    assert entry["level"] == "INFO"
    assert entry["logger"] == "medisync.test_json"
    assert (entry["run_id"], entry["page_index"], entry["patient_index"]) == ("run-7", 3, 4)
    assert entry["action"] == "created"


def test_document_extractor_logs_under_project_tree():
    from medisync.core.extract import document

    assert document.logger.name == "medisync.extract.document"
