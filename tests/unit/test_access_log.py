"""
Unit tests for access log entries.
"""

import json
import logging
import time

from sockhttp.access_log import AccessLogger, build_entry
from sockhttp.http import HTTPRequest


def make_entry(**overrides):
    request = HTTPRequest(
        method="GET",
        path="/echo/:str",
        raw_path="/echo/abc",
        headers={"user_agent": "pytest"},
        client_address=("127.0.0.1", 5000),
    )
    return build_entry(request, 200, 3, time.perf_counter(), endpoint="/echo/:str", **overrides)


class TestBuildEntry:

    def test_from_request(self):
        entry = make_entry()

        assert entry.method == "GET"
        assert entry.path == "/echo/abc"
        assert entry.endpoint == "/echo/:str"
        assert entry.client_ip == "127.0.0.1"
        assert entry.user_agent == "pytest"
        assert entry.status_code == 200
        assert entry.content_length == 3
        assert entry.duration_ms >= 0

    def test_without_request(self):
        entry = build_entry(
            None, 404, 0, time.perf_counter(),
            client_address=("10.0.0.1", 1), method="DELETE",
        )

        assert entry.method == "DELETE"
        assert entry.path == "-"
        assert entry.endpoint == "-"
        assert entry.client_ip == "10.0.0.1"

    def test_unmatched_endpoint(self):
        request = HTTPRequest(method="GET", path="/nowhere")
        entry = build_entry(request, 404, 0, time.perf_counter())

        assert entry.endpoint == "-"
        assert entry.user_agent == "-"


class TestAccessLogger:

    def test_text_format(self):
        line = AccessLogger("text").format(make_entry())

        assert line.startswith("127.0.0.1 - - [")
        assert '"GET /echo/abc" 200 3' in line

    def test_json_format(self):
        data = json.loads(AccessLogger("json").format(make_entry()))

        assert data["endpoint"] == "/echo/:str"
        assert data["status_code"] == 200
        assert len(data["request_id"]) == 8

    def test_log(self, caplog):
        with caplog.at_level(logging.INFO, logger="sockhttp.access"):
            AccessLogger().log(make_entry())

        assert '"GET /echo/abc" 200' in caplog.text
