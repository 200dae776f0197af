# Copyright (c) 2025 adcl.io
# All Rights Reserved.
#
# This software is proprietary and confidential. Unauthorized copying,
# distribution, or use of this software is strictly prohibited.

"""
Unit tests for structured logging and the error hierarchy
"""

import json
import logging

from flowgate.core.errors import ConflictError, FlowgateError, NotFoundError, ValidationError
from flowgate.core.logging import JSONFormatter, get_logger, log_event


class TestJSONFormatter:

    def test_includes_extra_fields(self):
        record = logging.LogRecord(
            "flowgate.test", logging.INFO, __file__, 1, "workflow.version.published", None, None,
        )
        record.version_code = "1.0.0"
        record.archived_version_codes = ["0.9.0"]

        data = json.loads(JSONFormatter().format(record))
        assert data["level"] == "INFO"
        assert data["logger"] == "flowgate.test"
        assert data["message"] == "workflow.version.published"
        assert data["version_code"] == "1.0.0"
        assert data["archived_version_codes"] == ["0.9.0"]
        assert "lineno" not in data

    def test_log_event_writes_one_json_line(self, temp_data_dir):
        log_file = temp_data_dir / "logs" / "audit.log"
        logger = get_logger("flowgate.test.audit", log_file=log_file)

        log_event(logger, "workflow.definition.archived", definition_id="wfd_1")
        for handler in logger.handlers:
            handler.flush()

        (line,) = log_file.read_text().splitlines()
        data = json.loads(line)
        assert data["message"] == "workflow.definition.archived"
        assert data["definition_id"] == "wfd_1"

    def test_get_logger_replaces_handlers(self):
        get_logger("flowgate.test.handlers")
        logger = get_logger("flowgate.test.handlers", log_level="debug", log_format="text")

        assert len(logger.handlers) == 1
        assert logger.level == logging.DEBUG


class TestErrors:

    def test_status_codes(self):
        assert NotFoundError("WorkflowDefinition", "wfd_1").status_code == 404
        assert ValidationError("bad").status_code == 400
        assert ConflictError("archived").status_code == 409
        assert FlowgateError("boom").status_code == 500

    def test_to_dict(self):
        error = ValidationError("Workflow 'wf_a' already exists", field="workflow_id")
        data = error.to_dict()

        assert data["error"] == "ValidationError"
        assert data["status_code"] == 400
        assert data["message"] == "Workflow 'wf_a' already exists"
        assert error.field == "workflow_id"

    def test_not_found_message(self):
        error = NotFoundError("WorkflowVersion", "9.9.9")
        assert str(error) == "WorkflowVersion not found: 9.9.9"
        assert isinstance(error, FlowgateError)
