from __future__ import annotations

import json
import logging
import sys
import unittest
from pathlib import Path

sys.path.insert(0, str(Path(__file__).resolve().parents[1] / "src"))

from api.observability import JsonFormatter, job_id_var, job_log_context, request_id_var


def _record(**extra: object) -> logging.LogRecord:
    record = logging.LogRecord(
        name="api.modules.jobs.runner",
        level=logging.INFO,
        pathname=__file__,
        lineno=1,
        msg="job_started",
        args=(),
        exc_info=None,
    )
    for key, value in extra.items():
        setattr(record, key, value)
    return record


class TestJsonFormatter(unittest.TestCase):
    def test_job_context_is_stamped_on_records(self) -> None:
        formatter = JsonFormatter()

        with job_log_context("job-42"):
            payload = json.loads(formatter.format(_record(games_replayed=6)))

        self.assertEqual(payload["message"], "job_started")
        self.assertEqual(payload["job_id"], "job-42")
        self.assertEqual(payload["games_replayed"], 6)
        self.assertIsNone(job_id_var.get())

    def test_explicit_extra_wins_over_context(self) -> None:
        formatter = JsonFormatter()
        token = request_id_var.set("req-ctx")
        try:
            payload = json.loads(formatter.format(_record(request_id="req-extra")))
        finally:
            request_id_var.reset(token)

        self.assertEqual(payload["request_id"], "req-extra")
        self.assertNotIn("job_id", payload)


if __name__ == "__main__":
    unittest.main()
