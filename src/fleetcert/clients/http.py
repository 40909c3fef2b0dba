r"""JSON-over-HTTPS transport shared by every collaborator client.

Authentication options (per endpoint, see :class:`EndpointSettings`):

- **Header-based auth**: API tokens, Bearer tokens, custom headers
  (configured via ``auth_header`` / ``auth_value``)
- **Mutual TLS (mTLS)**: Client certificate + key for strong identity
  (configured via ``client_cert_path`` / ``client_key_path``)
- **Custom CA trust**: Pin the collaborator's TLS certificate
  (configured via ``ca_cert_path``)

Transient failures (network errors, HTTP 5xx) are retried with
exponential backoff, ``retry_delay_seconds * 2**attempt``.
"""

from __future__ import annotations

import contextlib
import json
import logging
import ssl
import time
import urllib.error
import urllib.parse
import urllib.request
from typing import TYPE_CHECKING, Any

from fleetcert.core.errors import CollaboratorError

if TYPE_CHECKING:
    from fleetcert.config.settings import EndpointSettings

log = logging.getLogger(__name__)

_NOT_FOUND = 404


class JsonHttpClient:
    """Send JSON requests to one collaborator endpoint.

    Parameters
    ----------
    settings:
        Endpoint configuration (base URL, auth, TLS, retries).
    name:
        Collaborator name used in log and error messages.
    error_cls:
        :class:`CollaboratorError` subclass raised on failure.

    """

    def __init__(
        self,
        settings: EndpointSettings,
        *,
        name: str,
        error_cls: type[CollaboratorError] = CollaboratorError,
    ) -> None:
        self._settings = settings
        self._name = name
        self._error_cls = error_cls
        self._ssl_ctx: ssl.SSLContext | None = None

    @property
    def name(self) -> str:
        return self._name

    def url_for(self, path: str, query: dict[str, Any] | None = None) -> str:
        """Join *path* onto the base URL and append non-empty *query* values."""
        url = f"{self._settings.base_url}{path}"
        if query:
            params = {k: v for k, v in query.items() if v is not None}
            if params:
                url = f"{url}?{urllib.parse.urlencode(params)}"
        return url

    @staticmethod
    def quote(segment: str) -> str:
        """Percent-encode one path segment (ARNs contain ``:`` and ``/``)."""
        return urllib.parse.quote(segment, safe="")

    # -- public request helpers ----------------------------------------------

    def request_json(
        self,
        method: str,
        path: str,
        payload: dict | None = None,
        *,
        query: dict[str, Any] | None = None,
        allow_not_found: bool = False,
    ) -> dict | None:
        """Send a JSON request and return the decoded JSON body.

        Returns ``{}`` for empty bodies and ``None`` for HTTP 404 when
        *allow_not_found* is set.
        """
        body = None
        if payload is not None:
            body = json.dumps(payload).encode("utf-8")
        raw = self._do_request(
            method,
            self.url_for(path, query),
            body,
            content_type="application/json",
            allow_not_found=allow_not_found,
        )
        if raw is None:
            return None
        if not raw:
            return {}
        try:
            return json.loads(raw.decode("utf-8"))
        except (json.JSONDecodeError, UnicodeDecodeError) as exc:
            msg = f"{self._name} returned invalid JSON response: {exc}"
            raise self._error_cls(msg, retryable=False) from exc

    def request_bytes(
        self,
        method: str,
        path: str,
        body: bytes | None = None,
        *,
        content_type: str = "application/octet-stream",
    ) -> bytes:
        """Send a raw request and return the raw response body."""
        raw = self._do_request(
            method,
            self.url_for(path),
            body,
            content_type=content_type,
            allow_not_found=False,
        )
        return raw or b""

    # -- transport -------------------------------------------------------------

    def _get_ssl_context(self) -> ssl.SSLContext:
        """Build (and cache) an SSL context with mTLS and CA trust config."""
        if self._ssl_ctx is not None:
            return self._ssl_ctx

        ctx = ssl.create_default_context()

        if self._settings.ca_cert_path:
            ctx.load_verify_locations(self._settings.ca_cert_path)

        if self._settings.client_cert_path and self._settings.client_key_path:
            ctx.load_cert_chain(
                self._settings.client_cert_path,
                self._settings.client_key_path,
            )

        self._ssl_ctx = ctx
        return ctx

    def _build_request(
        self,
        method: str,
        url: str,
        body: bytes | None,
        content_type: str,
    ) -> urllib.request.Request:
        """Build a request with auth headers."""
        req = urllib.request.Request(
            url,
            data=body,
            method=method,
            headers={"Accept": "application/json"},
        )
        if body is not None:
            req.add_header("Content-Type", content_type)
        if self._settings.auth_value:
            req.add_header(self._settings.auth_header, self._settings.auth_value)
        return req

    def _do_request(
        self,
        method: str,
        url: str,
        body: bytes | None,
        *,
        content_type: str,
        allow_not_found: bool,
    ) -> bytes | None:
        """Send a request with retry logic."""
        if not self._settings.base_url:
            msg = f"{self._name} base_url is not configured"
            raise self._error_cls(msg, retryable=False)

        max_retries = self._settings.max_retries
        delay = self._settings.retry_delay_seconds

        for attempt in range(max_retries + 1):
            try:
                return self._do_single_request(
                    method,
                    url,
                    body,
                    content_type=content_type,
                    allow_not_found=allow_not_found,
                )
            except CollaboratorError as exc:
                if not exc.retryable or attempt == max_retries:
                    raise
                log.warning(
                    "%s %s attempt %d/%d failed: %s",
                    self._name,
                    method,
                    attempt + 1,
                    max_retries + 1,
                    exc.detail,
                )
                time.sleep(delay * (2**attempt))

        msg = f"{self._name} request was not attempted"
        raise self._error_cls(msg, retryable=False)

    def _do_single_request(
        self,
        method: str,
        url: str,
        body: bytes | None,
        *,
        content_type: str,
        allow_not_found: bool,
    ) -> bytes | None:
        """Send a single request and return the raw response body."""
        req = self._build_request(method, url, body, content_type)
        handler = urllib.request.HTTPSHandler(context=self._get_ssl_context())
        opener = urllib.request.build_opener(handler)

        log.debug("%s %s %s", self._name, method, url)
        try:
            resp = opener.open(req, timeout=self._settings.timeout_seconds)
        except urllib.error.HTTPError as exc:
            if exc.code == _NOT_FOUND and allow_not_found:
                return None
            detail = ""
            with contextlib.suppress(Exception):
                detail = exc.read().decode("utf-8", errors="replace")[:500]
            msg = f"{self._name} returned HTTP {exc.code}: {detail}"
            raise self._error_cls(msg, retryable=exc.code >= 500) from exc
        except (urllib.error.URLError, OSError) as exc:
            msg = f"Failed to reach {self._name} at {url}: {exc}"
            raise self._error_cls(msg, retryable=True) from exc

        with resp:
            if resp.status >= 300:
                msg = f"{self._name} returned unexpected HTTP {resp.status}"
                raise self._error_cls(msg, retryable=resp.status >= 500)
            return resp.read()
