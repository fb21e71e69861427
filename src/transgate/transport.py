"""Pooled HTTP transport with per-host cookie affinity."""
import json
import logging
import threading
import time
from http import cookiejar
from typing import Any, Dict, List, Mapping, Optional
from urllib.parse import urlparse

import requests
from requests.adapters import HTTPAdapter
from urllib3.util import Retry

logger = logging.getLogger(__name__)

# Seconds. Generous enough for large batches.
# urllib3 keeps the connect timeout on the socket while the request body
# is sent, so it also bounds each write.
CONNECT_TIMEOUT = 120
READ_TIMEOUT = 120
# Deadline for the whole exchange, response body included.
CALL_TIMEOUT = 120

BODY_CHUNK_SIZE = 64 * 1024

# urllib3 retries bare connection failures once inside a single attempt.
CONNECTION_RETRIES = 1

DEFAULT_POOL_SIZE = 8

REDACTED_HEADERS = frozenset({'authorization', 'apikey'})
REDACTION_MARK = '██'


def redact_headers(headers: Mapping[str, str]) -> Dict[str, str]:
    """Return a copy of headers with credential-bearing values masked."""
    return {
        name: REDACTION_MARK if name.lower() in REDACTED_HEADERS else value
        for name, value in headers.items()
    }


class _RejectAllCookies(cookiejar.DefaultCookiePolicy):
    """Keep the session jar empty; CookieAffinityStore owns cookie state."""

    def set_ok(self, cookie, request):
        return False

    def return_ok(self, cookie, request):
        return False


class CookieAffinityStore:
    """Most recent cookies per remote host.

    No path, domain or expiry matching: the latest set issued by a host
    replaces the previous one entirely. Safe for concurrent use.
    """

    def __init__(self):
        self._lock = threading.Lock()
        self._cookies: Dict[str, Dict[str, str]] = {}

    def get(self, host: str) -> Dict[str, str]:
        with self._lock:
            return dict(self._cookies.get(host, {}))

    def put(self, host: str, cookies: Mapping[str, str]) -> None:
        with self._lock:
            self._cookies[host] = dict(cookies)

    def hosts(self) -> List[str]:
        with self._lock:
            return list(self._cookies)

    def clear(self) -> None:
        with self._lock:
            self._cookies.clear()


class TransportClient:
    """Long-lived JSON-over-HTTP client shared by all calls of one adapter.

    The underlying connection pool is bounded by ``pool_size``; callers
    beyond that block until a connection is free.
    """

    def __init__(
        self,
        cookie_store: Optional[CookieAffinityStore] = None,
        pool_size: int = DEFAULT_POOL_SIZE,
        connect_timeout: float = CONNECT_TIMEOUT,
        read_timeout: float = READ_TIMEOUT,
        call_timeout: float = CALL_TIMEOUT,
    ):
        """Initialize transport.

        Args:
            cookie_store: Shared per-host cookie store (a new one if None)
            pool_size: Maximum pooled connections per host
            connect_timeout: Connect timeout in seconds
            read_timeout: Idle limit between reads in seconds
            call_timeout: Limit for the whole exchange in seconds
        """
        self.cookie_store = cookie_store if cookie_store is not None else CookieAffinityStore()
        self.timeout = (connect_timeout, read_timeout)
        self.call_timeout = call_timeout
        self.pool_size = max(1, int(pool_size))
        self.session = self._build_session()

    def _build_session(self) -> requests.Session:
        session = requests.Session()
        session.cookies.set_policy(_RejectAllCookies())
        retries = Retry(
            total=CONNECTION_RETRIES,
            connect=CONNECTION_RETRIES,
            read=0,
            redirect=0,
            status=0,
            other=0,
            allowed_methods=None,
            raise_on_status=False,
        )
        adapter = HTTPAdapter(
            pool_connections=self.pool_size,
            pool_maxsize=self.pool_size,
            pool_block=True,
            max_retries=retries,
        )
        session.mount('http://', adapter)
        session.mount('https://', adapter)
        return session

    def post_json(
        self,
        url: str,
        payload: Any,
        headers: Mapping[str, str],
    ) -> requests.Response:
        """POST a JSON payload and return the response with its body read.

        Cookies stored for the URL's host are attached; cookies set by the
        response replace the stored set for the responding host. The whole
        exchange, body included, must finish within ``call_timeout``.

        Raises:
            requests.Timeout: On connect, read or whole-call timeout
            requests.RequestException: On connection or I/O failure
        """
        host = urlparse(url).hostname or ''
        body = json.dumps(payload, ensure_ascii=False).encode('utf-8')

        logger.info("--> POST %s (%d-byte body)", url, len(body))
        logger.debug("Request headers: %s", redact_headers(headers))

        begin = time.monotonic()
        deadline = begin + self.call_timeout
        response = self.session.post(
            url,
            data=body,
            headers=dict(headers),
            cookies=self.cookie_store.get(host),
            timeout=self.timeout,
            stream=True,
        )
        try:
            self._read_body(response, deadline)
        except Exception:
            response.close()
            raise

        received = response.cookies.get_dict()
        if received:
            response_host = urlparse(response.url).hostname if response.url else None
            self.cookie_store.put(response_host or host, received)

        logger.info(
            "<-- %s %s (%dms, %d-byte body)",
            response.status_code,
            response.url or url,
            int((time.monotonic() - begin) * 1000),
            len(response.content),
        )
        logger.debug("Response headers: %s", redact_headers(response.headers))
        return response

    def _read_body(self, response: requests.Response, deadline: float) -> None:
        """Read a streamed body into ``response.content`` before ``deadline``.

        ``read1`` returns whatever is available, so a server that trickles
        bytes is cut off at the deadline rather than after the last byte.
        """
        chunks = []
        while True:
            if time.monotonic() > deadline:
                raise requests.Timeout(
                    f"call timed out after {self.call_timeout}s", response=response
                )
            chunk = response.raw.read1(BODY_CHUNK_SIZE, decode_content=True)
            if not chunk:
                break
            chunks.append(chunk)
        # Same fields requests fills in when it reads the body itself.
        response._content = b''.join(chunks)
        response._content_consumed = True

    def close(self) -> None:
        self.session.close()

    def __enter__(self) -> "TransportClient":
        return self

    def __exit__(self, *args) -> None:
        self.close()
