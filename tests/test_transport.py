"""Unit tests for the pooled HTTP transport and cookie affinity."""
import itertools
import json
import logging
import threading
import time
from http.server import BaseHTTPRequestHandler, ThreadingHTTPServer
from unittest.mock import patch

import pytest
import requests
from requests.cookies import create_cookie

from tests.conftest import FREED_URL, make_response
from transgate.transport import (
    CALL_TIMEOUT,
    CONNECT_TIMEOUT,
    READ_TIMEOUT,
    CookieAffinityStore,
    TransportClient,
    redact_headers,
)


HEADERS = {"Content-Type": "application/json", "Authorization": "Bearer s3cret", "apikey": "k3y"}


@pytest.fixture
def client():
    transport = TransportClient(pool_size=4)
    yield transport
    transport.close()


class TestRedactHeaders:
    """Tests for header redaction."""

    def test_masks_credentials_case_insensitively(self):
        redacted = redact_headers({"authorization": "Bearer x", "APIKEY": "y", "Accept": "*/*"})
        assert redacted["authorization"] != "Bearer x"
        assert redacted["APIKEY"] != "y"
        assert redacted["Accept"] == "*/*"

    def test_does_not_modify_input(self):
        redact_headers(HEADERS)
        assert HEADERS["Authorization"] == "Bearer s3cret"


class TestCookieAffinityStore:
    """Tests for the per-host cookie store."""

    def test_unknown_host_returns_empty(self):
        assert CookieAffinityStore().get("example.com") == {}

    def test_put_replaces_whole_set(self):
        store = CookieAffinityStore()
        store.put("example.com", {"a": "1", "b": "2"})
        store.put("example.com", {"c": "3"})
        assert store.get("example.com") == {"c": "3"}

    def test_hosts_are_independent(self):
        store = CookieAffinityStore()
        store.put("one.example.com", {"a": "1"})
        store.put("two.example.com", {"b": "2"})
        assert store.get("one.example.com") == {"a": "1"}
        assert sorted(store.hosts()) == ["one.example.com", "two.example.com"]

    def test_get_returns_copy(self):
        store = CookieAffinityStore()
        store.put("example.com", {"a": "1"})
        store.get("example.com")["a"] = "changed"
        assert store.get("example.com") == {"a": "1"}

    def test_concurrent_writers_leave_one_complete_set(self):
        store = CookieAffinityStore()

        def writer(n):
            for _ in range(200):
                store.put("example.com", {"writer": str(n), "seq": str(n)})

        threads = [threading.Thread(target=writer, args=(n,)) for n in range(8)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        cookies = store.get("example.com")
        assert cookies["writer"] == cookies["seq"]

    def test_clear(self):
        store = CookieAffinityStore()
        store.put("example.com", {"a": "1"})
        store.clear()
        assert store.hosts() == []


class TestTransportClient:
    """Tests for TransportClient.post_json."""

    def test_pool_sized_to_concurrency(self, client):
        adapter = client.session.get_adapter("https://api.freed.example.com")
        assert adapter._pool_maxsize == 4
        assert adapter._pool_block is True
        assert adapter.max_retries.connect == 1
        assert adapter.max_retries.other == 0
        assert client.call_timeout == CALL_TIMEOUT

    def test_posts_utf8_json_with_timeouts(self, client):
        with patch.object(client.session, "post", return_value=make_response(200, "{}")) as mock_post:
            client.post_json(FREED_URL, {"text": ["你好"]}, HEADERS)

        call = mock_post.call_args
        assert call.args[0] == FREED_URL
        assert json.loads(call.kwargs["data"].decode("utf-8")) == {"text": ["你好"]}
        assert "你好".encode("utf-8") in call.kwargs["data"]
        assert call.kwargs["timeout"] == (CONNECT_TIMEOUT, READ_TIMEOUT)
        assert call.kwargs["stream"] is True
        assert call.kwargs["headers"]["Authorization"] == "Bearer s3cret"

    def test_cookie_affinity_across_requests(self, client):
        responses = [
            make_response(200, "{}", cookies={"session": "C1"}),
            make_response(200, "{}", cookies={"session": "C2", "route": "b"}),
            make_response(200, "{}"),
        ]
        with patch.object(client.session, "post", side_effect=responses) as mock_post:
            client.post_json(FREED_URL, {}, HEADERS)
            client.post_json(FREED_URL, {}, HEADERS)
            client.post_json(FREED_URL, {}, HEADERS)

        sent = [c.kwargs["cookies"] for c in mock_post.call_args_list]
        assert sent[0] == {}
        assert sent[1] == {"session": "C1"}
        assert sent[2] == {"session": "C2", "route": "b"}

    def test_response_without_cookies_keeps_stored_set(self, client):
        responses = [
            make_response(200, "{}", cookies={"session": "C1"}),
            make_response(200, "{}"),
            make_response(200, "{}"),
        ]
        with patch.object(client.session, "post", side_effect=responses) as mock_post:
            for _ in responses:
                client.post_json(FREED_URL, {}, HEADERS)

        assert mock_post.call_args_list[2].kwargs["cookies"] == {"session": "C1"}

    def test_cookies_are_keyed_by_host(self, client):
        other_url = "https://other.example.com/translate"
        responses = [
            make_response(200, "{}", cookies={"session": "C1"}),
            make_response(200, "{}", url=other_url),
        ]
        with patch.object(client.session, "post", side_effect=responses) as mock_post:
            client.post_json(FREED_URL, {}, HEADERS)
            client.post_json(other_url, {}, HEADERS)

        assert mock_post.call_args_list[1].kwargs["cookies"] == {}
        assert client.cookie_store.get("api.freed.example.com") == {"session": "C1"}

    def test_shared_store_is_used(self):
        store = CookieAffinityStore()
        store.put("api.freed.example.com", {"session": "seeded"})
        transport = TransportClient(cookie_store=store)
        try:
            with patch.object(transport.session, "post", return_value=make_response(200, "{}")) as mock_post:
                transport.post_json(FREED_URL, {}, HEADERS)
        finally:
            transport.close()

        assert mock_post.call_args.kwargs["cookies"] == {"session": "seeded"}

    def test_session_jar_rejects_cookies(self, client):
        policy = client.session.cookies._policy
        cookie = create_cookie("session", "leaked", domain="api.freed.example.com")
        assert not policy.set_ok(cookie, None)
        assert not policy.return_ok(cookie, None)

    def test_transport_errors_propagate(self, client):
        with patch.object(client.session, "post", side_effect=requests.ConnectionError("refused")):
            with pytest.raises(requests.ConnectionError):
                client.post_json(FREED_URL, {}, HEADERS)

    def test_log_is_redacted(self, client, caplog):
        with caplog.at_level(logging.DEBUG, logger="transgate.transport"):
            with patch.object(client.session, "post", return_value=make_response(200, "{}")):
                client.post_json(FREED_URL, {}, HEADERS)

        assert "--> POST" in caplog.text
        assert "<-- 200" in caplog.text
        assert "s3cret" not in caplog.text
        assert "k3y" not in caplog.text

    def test_context_manager_closes_session(self):
        with patch.object(TransportClient, "close") as mock_close:
            with TransportClient():
                pass
        mock_close.assert_called_once()

    def test_body_is_read_into_content(self, client):
        with patch.object(client.session, "post", return_value=make_response(200, '{"ok": true}')):
            response = client.post_json(FREED_URL, {}, HEADERS)
        assert response.content == b'{"ok": true}'
        assert response.json() == {"ok": True}

    def test_call_deadline_raises_timeout_and_closes_response(self, client):
        response = make_response(200, '{"ok": true}')
        clock = itertools.count(0, 100)
        with patch.object(client.session, "post", return_value=response):
            with patch("transgate.transport.time.monotonic", side_effect=lambda: next(clock)):
                with pytest.raises(requests.Timeout):
                    client.post_json(FREED_URL, {}, HEADERS)
        assert response.raw.closed


class _CookieHandler(BaseHTTPRequestHandler):
    """Records the Cookie header and issues sid=C1, then sid=C2."""

    def do_POST(self):
        self.rfile.read(int(self.headers.get("Content-Length", 0)))
        self.server.seen.append(self.headers.get("Cookie"))
        body = b"{}"
        self.send_response(200)
        if len(self.server.seen) <= 2:
            self.send_header("Set-Cookie", f"sid=C{len(self.server.seen)}")
        self.send_header("Content-Length", str(len(body)))
        self.end_headers()
        self.wfile.write(body)

    def log_message(self, *args):
        pass


class _TrickleHandler(BaseHTTPRequestHandler):
    """Sends a 40-byte body one byte every 0.1s."""

    def do_POST(self):
        self.rfile.read(int(self.headers.get("Content-Length", 0)))
        self.send_response(200)
        self.send_header("Content-Length", "40")
        self.end_headers()
        try:
            for _ in range(40):
                self.wfile.write(b"x")
                self.wfile.flush()
                time.sleep(0.1)
        except (BrokenPipeError, ConnectionResetError):
            pass

    def log_message(self, *args):
        pass


@pytest.fixture
def local_server():
    """Start a local HTTP server for a handler; returns (server, url)."""
    servers = []

    def start(handler):
        server = ThreadingHTTPServer(("127.0.0.1", 0), handler)
        server.daemon_threads = True
        server.seen = []
        threading.Thread(target=server.serve_forever, daemon=True).start()
        servers.append(server)
        return server, f"http://127.0.0.1:{server.server_address[1]}/translate"

    yield start
    for server in servers:
        server.shutdown()
        server.server_close()


class TestTransportOverSocket:
    """TransportClient against a real local HTTP server."""

    def test_cookie_header_follows_latest_response(self, local_server):
        server, url = local_server(_CookieHandler)
        with TransportClient() as transport:
            transport.session.trust_env = False
            for _ in range(3):
                transport.post_json(url, {"text": ["Hello"]}, HEADERS)

        assert server.seen == [None, "sid=C1", "sid=C2"]
        assert len(transport.session.cookies) == 0

    def test_trickling_body_hits_call_deadline(self, local_server):
        _, url = local_server(_TrickleHandler)
        with TransportClient(connect_timeout=0.5, read_timeout=0.5, call_timeout=0.5) as transport:
            transport.session.trust_env = False
            begin = time.monotonic()
            with pytest.raises(requests.Timeout):
                transport.post_json(url, {}, HEADERS)
            elapsed = time.monotonic() - begin

        assert elapsed < 2.0
