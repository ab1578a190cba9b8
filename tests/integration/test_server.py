"""
End-to-end tests: a real server on a loopback port, raw bytes over TCP.
"""

import socket
import threading
import time

import pytest

from minihttp import ServerConfig
from minihttp.handlers import FileHandler, build_router
from minihttp.http.router import exact


class TestBasicRoutes:

    def test_root(self, test_server):
        response = test_server.request(b"GET / HTTP/1.1\r\nHost: localhost\r\n\r\n")

        assert response.status_line == "HTTP/1.1 200 OK"
        assert response.headers["Content-Type"] == "text/plain"
        assert response.headers["Content-Length"] == "0"
        assert response.body == b""

    def test_unknown_path_404(self, test_server):
        response = test_server.request(b"GET /index.html HTTP/1.1\r\n\r\n")

        assert response.status_line == "HTTP/1.1 404 Not Found"
        assert response.headers["Content-Length"] == "0"
        assert response.body == b""

    def test_echo(self, test_server):
        response = test_server.request(b"GET /echo/abc HTTP/1.1\r\n\r\n")

        assert response.status == 200
        assert response.headers["Content-Type"] == "text/plain"
        assert response.headers["Content-Length"] == "3"
        assert response.body == b"abc"

    def test_echo_raw_bytes_round_trip(self, test_server):
        response = test_server.request(b"GET /echo/caf\xe9%20x/y HTTP/1.1\r\n\r\n")

        assert response.body == b"caf\xe9%20x/y"
        assert response.headers["Content-Length"] == str(len(b"caf\xe9%20x/y"))

    def test_user_agent(self, test_server):
        response = test_server.request(
            b"GET /user-agent HTTP/1.1\r\n"
            b"Host: localhost\r\n"
            b"user-agent: foobar/1.2.3\r\n"
            b"\r\n"
        )

        assert response.status == 200
        assert response.body == b"foobar/1.2.3"
        assert response.headers["Content-Length"] == "12"

    def test_version_echoed(self, test_server):
        response = test_server.request(b"GET / HTTP/1.0\r\n\r\n")
        assert response.status_line == "HTTP/1.0 200 OK"

    def test_connection_closed_after_one_response(self, test_server):
        """A second pipelined request is never answered."""
        response = test_server.request(
            b"GET /echo/one HTTP/1.1\r\n\r\n"
            b"GET /echo/two HTTP/1.1\r\n\r\n"
        )

        assert response.body == b"one"
        assert response.raw.count(b"HTTP/1.1 200 OK") == 1


class TestFiles:

    def test_write_then_read(self, test_server, file_root):
        written = test_server.request(
            b"POST /files/notes.txt HTTP/1.1\r\n"
            b"Content-Length: 11\r\n"
            b"\r\n"
            b"hello files"
        )

        assert written.status_line == "HTTP/1.1 201 Created"
        assert written.body == b""
        assert (file_root / "notes.txt").read_bytes() == b"hello files"

        read = test_server.request(b"GET /files/notes.txt HTTP/1.1\r\n\r\n")

        assert read.status == 200
        assert read.headers["Content-Type"] == "application/octet-stream"
        assert read.headers["Content-Length"] == "11"
        assert read.body == b"hello files"

    def test_missing_file_404(self, test_server):
        response = test_server.request(b"GET /files/nope HTTP/1.1\r\n\r\n")

        assert response.status == 404
        assert response.body == b""

    def test_traversal_403(self, test_server, tmp_path):
        (tmp_path / "secret").write_bytes(b"top secret")

        response = test_server.request(b"GET /files/../secret HTTP/1.1\r\n\r\n")

        assert response.status_line == "HTTP/1.1 403 Forbidden"
        assert b"top secret" not in response.raw

    def test_large_body(self, test_server, file_root):
        body = bytes(range(256)) * 1024
        request = (
            b"POST /files/big.bin HTTP/1.1\r\n"
            + f"Content-Length: {len(body)}\r\n\r\n".encode()
            + body
        )

        assert test_server.request(request).status == 201
        assert (file_root / "big.bin").read_bytes() == body

        read = test_server.request(b"GET /files/big.bin HTTP/1.1\r\n\r\n")
        assert read.body == body

    def test_files_disabled_without_directory(self, server_factory):
        server = server_factory(ServerConfig(host="127.0.0.1", port=0, log_level="WARNING"))

        response = server.request(b"GET /files/anything HTTP/1.1\r\n\r\n")

        assert response.status == 404


class TestRejectedRequests:

    def test_post_without_content_length_411(self, test_server, file_root):
        response = test_server.request(b"POST /files/x HTTP/1.1\r\nHost: a\r\n\r\nhello")

        assert response.status_line == "HTTP/1.1 411 Length Required"
        assert response.body == b""
        assert not (file_root / "x").exists()

    def test_malformed_request_line_400(self, test_server):
        response = test_server.request(b"GARBAGE\r\n\r\n")

        assert response.status_line == "HTTP/1.1 400 Bad Request"
        assert response.headers["Content-Length"] == "0"

    def test_malformed_header_400(self, test_server):
        response = test_server.request(b"GET / HTTP/1.1\r\nno colon here\r\n\r\n")
        assert response.status == 400

    def test_truncated_body_400(self, test_server, file_root):
        response = test_server.request(
            b"POST /files/partial HTTP/1.1\r\nContent-Length: 100\r\n\r\nonly this",
            half_close=True,
        )

        assert response.status == 400
        assert not (file_root / "partial").exists()

    def test_body_too_large_413(self, server_factory, config):
        config.max_body_size = 8
        server = server_factory(config)

        response = server.request(
            b"POST /files/big HTTP/1.1\r\nContent-Length: 9\r\n\r\n123456789"
        )

        assert response.status_line == "HTTP/1.1 413 Payload Too Large"

    def test_huge_content_length_413(self, test_server):
        response = test_server.request(
            b"POST /files/x HTTP/1.1\r\nContent-Length: " + b"9" * 5000 + b"\r\n\r\n"
        )
        assert response.status == 413

        assert test_server.request(b"GET /echo/ok HTTP/1.1\r\n\r\n").body == b"ok"

    def test_streaming_after_413_is_cut_off(self, server_factory, config):
        """The server stops reading a client that ignores the 413 and keeps sending."""
        config.max_body_size = 8
        server = server_factory(config)

        with socket.create_connection(("127.0.0.1", server.port), timeout=5.0) as s:
            s.sendall(b"POST /files/big HTTP/1.1\r\nContent-Length: 999999999\r\n\r\n")

            head = b""
            while b"\r\n\r\n" not in head:
                chunk = s.recv(4096)
                assert chunk, "connection closed before the response"
                head += chunk
            assert head.startswith(b"HTTP/1.1 413 ")

            sent = 0
            started = time.monotonic()
            error = None
            while time.monotonic() - started < 4.0:
                try:
                    s.sendall(b"x" * 4096)
                except OSError as e:
                    error = e
                    break
                sent += 4096
                time.sleep(0.01)

        assert error is not None, f"server kept reading {sent} bytes after 413"
        assert not isinstance(error, socket.timeout)

    def test_silent_client_gets_no_response(self, server_factory, config):
        """A read timeout aborts the connection without writing anything."""
        config.timeout = 0.3
        server = server_factory(config)

        response = server.request(b"GET / HTT")

        assert response.raw == b""

    def test_early_close_does_not_stop_server(self, test_server):
        with socket.create_connection(("127.0.0.1", test_server.port), timeout=5.0) as s:
            s.sendall(b"GET /echo/")

        response = test_server.request(b"GET /echo/alive HTTP/1.1\r\n\r\n")
        assert response.body == b"alive"


class TestHandlerFailure:

    def test_handler_exception_500(self, server_factory, config):
        def explode(request, response, remainder):
            raise RuntimeError("boom")

        router = build_router(FileHandler(config.directory))
        router.add("explode", exact("/explode"), explode)
        server = server_factory(config, router=router)

        failed = server.request(b"GET /explode HTTP/1.1\r\n\r\n")
        assert failed.status_line == "HTTP/1.1 500 Internal Server Error"
        assert failed.body == b""

        ok = server.request(b"GET /echo/still-up HTTP/1.1\r\n\r\n")
        assert ok.body == b"still-up"


class TestConcurrency:

    def test_slow_client_does_not_block_others(self, test_server):
        """A connection stuck mid-request must not delay other clients."""
        with socket.create_connection(("127.0.0.1", test_server.port), timeout=5.0) as slow:
            slow.sendall(b"GET /echo/slow HTTP/1.1\r\n")

            started = time.monotonic()
            response = test_server.request(b"GET /echo/fast HTTP/1.1\r\n\r\n")
            elapsed = time.monotonic() - started

            assert response.body == b"fast"
            assert elapsed < 2.0

            slow.sendall(b"\r\n")
            chunks = []
            while True:
                chunk = slow.recv(4096)
                if not chunk:
                    break
                chunks.append(chunk)

        assert b"".join(chunks).endswith(b"\r\n\r\nslow")

    def test_many_parallel_clients(self, test_server):
        results = {}
        errors = []

        def client(i):
            try:
                response = test_server.request(f"GET /echo/{i} HTTP/1.1\r\n\r\n".encode())
                results[i] = response.body
            except OSError as e:
                errors.append(e)

        threads = [threading.Thread(target=client, args=(i,)) for i in range(20)]
        for t in threads:
            t.start()
        for t in threads:
            t.join(timeout=10.0)

        assert errors == []
        assert results == {i: str(i).encode() for i in range(20)}

    def test_parallel_writes_to_distinct_files(self, test_server, file_root):
        def writer(i):
            body = f"content-{i}".encode()
            test_server.request(
                f"POST /files/f{i} HTTP/1.1\r\nContent-Length: {len(body)}\r\n\r\n".encode() + body,
            )

        threads = [threading.Thread(target=writer, args=(i,)) for i in range(10)]
        for t in threads:
            t.start()
        for t in threads:
            t.join(timeout=10.0)

        for i in range(10):
            assert (file_root / f"f{i}").read_bytes() == f"content-{i}".encode()


@pytest.mark.parametrize("path,status,body", [
    (b"/", 200, b""),
    (b"/echo/x", 200, b"x"),
    (b"/echo/", 200, b""),
    (b"/user-agent", 200, b""),
    (b"/unknown", 404, b""),
])
def test_content_length_matches_body(test_server, path, status, body):
    response = test_server.request(b"GET " + path + b" HTTP/1.1\r\n\r\n")

    assert response.status == status
    assert response.body == body
    assert int(response.headers["Content-Length"]) == len(response.body)
