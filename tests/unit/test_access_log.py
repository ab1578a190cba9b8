"""
Unit tests for access log records.
"""

import json
import logging

from minihttp.access_log import RequestLog, log_request
from minihttp.http.headers import Headers
from minihttp.http.request import HTTPRequest
from minihttp.http.response import HTTPResponse


def make_record(request=None, status=200, body=b"hi") -> RequestLog:
    response = HTTPResponse(status=status).set_body(body)
    return RequestLog.create("abcd1234", "127.0.0.1", request, response, 1.234)


class TestRequestLog:

    def test_from_request(self):
        request = HTTPRequest(
            method="GET",
            path="/echo/hi",
            headers=Headers({"User-Agent": "curl/8.0"}),
        )
        record = make_record(request)

        assert record.method == "GET"
        assert record.path == "/echo/hi"
        assert record.version == "HTTP/1.1"
        assert record.user_agent == "curl/8.0"
        assert record.status_code == 200
        assert record.content_length == 2
        assert record.request_length == 0

    def test_without_request(self):
        record = make_record(None, status=400, body=b"")

        assert record.method == "-"
        assert record.path == "-"
        assert record.request_length == 0
        assert record.status_code == 400
        assert record.content_length == 0

    def test_to_text(self):
        request = HTTPRequest(method="GET", path="/echo/hi")
        text = make_record(request).to_text()

        assert text.startswith("127.0.0.1 - - [")
        assert '"GET /echo/hi HTTP/1.1" 200 2 1.23ms' in text

    def test_to_dict(self):
        data = make_record(HTTPRequest(method="POST", path="/files/a", body=b"x")).to_dict()

        assert data["connection_id"] == "abcd1234"
        assert data["method"] == "POST"
        assert data["request_length"] == 1
        assert data["duration_ms"] == 1.23
        assert json.loads(json.dumps(data)) == data


class TestLogRequest:

    def test_text_format(self, caplog):
        record = make_record(HTTPRequest(method="GET", path="/"))

        with caplog.at_level(logging.INFO, logger="minihttp.access"):
            log_request(record, "text")

        assert caplog.records[-1].name == "minihttp.access"
        assert '"GET / HTTP/1.1" 200' in caplog.records[-1].getMessage()

    def test_json_format(self, caplog):
        record = make_record(HTTPRequest(method="GET", path="/user-agent"))

        with caplog.at_level(logging.INFO, logger="minihttp.access"):
            log_request(record, "json")

        payload = json.loads(caplog.records[-1].getMessage())
        assert payload["path"] == "/user-agent"
        assert payload["status_code"] == 200
