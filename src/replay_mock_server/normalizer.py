# SPDX-FileCopyrightText: Copyright (c) 2025 NVIDIA CORPORATION & AFFILIATES. All rights reserved.
# SPDX-License-Identifier: Apache-2.0
"""Turn inbound HTTP calls and WebSocket messages into canonical requests."""

import posixpath
import re
from typing import Any
from urllib.parse import parse_qs, unquote, urlsplit

import orjson

from replay_mock_server.common.enums import Protocol
from replay_mock_server.common.exceptions import UnresolvableTargetError
from replay_mock_server.common.mixins import ReplayLoggerMixin
from replay_mock_server.models import ALLOWED_HEADERS, CanonicalRequest, InboundHttpCall

WEBSOCKET_PATHNAME = "/socket.io/"
WEBSOCKET_METHOD = "websocket"

_DEFAULT_PORTS = {"http": 80, "https": 443, "ws": 80, "wss": 443}
# Tolerates proxies and routers that collapse "//" after the scheme
_ABSOLUTE_URL_RE = re.compile(r"^(?P<scheme>https?|wss?):/+(?P<rest>.*)$", re.IGNORECASE)


class RequestNormalizer(ReplayLoggerMixin):
    """Build :class:`CanonicalRequest` values from protocol-specific calls.

    Args:
        listen_port: Port the server listens on, used to recognize
            ``{encodedHost}.localhost:{port}`` Host headers.
    """

    def __init__(self, listen_port: int, **kwargs) -> None:
        super().__init__(**kwargs)
        self.listen_port = listen_port
        self._subdomain_re = re.compile(
            rf"^(?P<origin>.+)\.localhost:{listen_port}$", re.IGNORECASE
        )

    # ------------------------------------------------------------------
    # HTTP
    # ------------------------------------------------------------------

    def resolve_http_target(self, call: InboundHttpCall) -> str:
        """Resolve the absolute upstream URL of an HTTP call.

        Strategies are tried in order and the first one that produces an
        absolute URL wins:

        1. an explicit ``url=`` query parameter
        2. an absolute URL in the inbound path
        3. a ``{encodedHost}.localhost:{port}`` Host header
        4. a relative path against the absolute URL embedded in ``Referer``

        Raises:
            UnresolvableTargetError: If no strategy applies.
        """
        relative = call.path[1:] if call.path.startswith("/") else call.path

        for resolve in (
            self._from_url_param,
            self._from_absolute_path,
            self._from_subdomain,
            self._from_referer,
        ):
            target = resolve(call, relative)
            if target is not None:
                self.trace(lambda: f"{resolve.__name__} resolved {call.path} to {target}")
                return target

        raise UnresolvableTargetError(
            f"Cannot resolve an upstream URL for {call.method} {call.path}"
        )

    def normalize_http(self, call: InboundHttpCall) -> CanonicalRequest:
        """Resolve the target of an HTTP call and canonicalize it."""
        host, pathname, href = parse_target(self.resolve_http_target(call))
        headers = {
            name: value
            for name in ALLOWED_HEADERS
            if (value := call.get_header(name))
        }
        return CanonicalRequest(
            protocol=Protocol.HTTP,
            host=host,
            pathname=pathname,
            href=href,
            method=call.method.upper(),
            headers=headers,
            body=call.body,
        )

    @staticmethod
    def _from_url_param(call: InboundHttpCall, _: str) -> str | None:
        if call.query.startswith("url="):
            # Everything after "url=" so the target keeps its own query string
            target = unquote(call.query[len("url=") :])
        else:
            target = next(iter(parse_qs(call.query).get("url", [])), None)
        if target and _ABSOLUTE_URL_RE.match(target):
            return _fix_scheme_slashes(target)
        return None

    @staticmethod
    def _from_absolute_path(call: InboundHttpCall, relative: str) -> str | None:
        if _ABSOLUTE_URL_RE.match(relative):
            return _with_query(_fix_scheme_slashes(relative), call.query)
        return None

    def _from_subdomain(self, call: InboundHttpCall, relative: str) -> str | None:
        host = call.get_header("Host")
        match = self._subdomain_re.match(host) if host else None
        if match is None:
            return None
        return _with_query(f"https://{match['origin']}/{relative}", call.query)

    @staticmethod
    def _from_referer(call: InboundHttpCall, relative: str) -> str | None:
        referer = call.get_header("Referer")
        index = referer.find("/http") if referer else -1
        if index == -1:
            return None
        parts = urlsplit(_fix_scheme_slashes(referer[index + 1 :]))
        if not parts.scheme or not parts.netloc:
            return None
        return _with_query(f"{parts.scheme}://{parts.netloc}/{relative}", call.query)

    # ------------------------------------------------------------------
    # WebSocket RPC
    # ------------------------------------------------------------------

    def resolve_websocket_target(self, raw: str | None) -> str:
        """Validate the ``url`` connection parameter of a WebSocket client.

        Raises:
            UnresolvableTargetError: If the parameter is blank or not absolute.
        """
        value = (raw or "").strip()
        if "://" not in value:
            # Clients commonly encode the parameter before the query string
            # encodes it again
            value = unquote(value)
        if not value or not _ABSOLUTE_URL_RE.match(value):
            raise UnresolvableTargetError(
                f"WebSocket client connected without a valid target url: {raw!r}"
            )
        return _fix_scheme_slashes(value)

    def normalize_websocket(self, target: str, data: Any) -> CanonicalRequest:
        """Canonicalize one WebSocket RPC message sent to ``target``.

        Only the message payload is hashed, never the per-exchange
        correlation id, so repeated messages share a fingerprint.
        """
        host, _, href = parse_target(target)
        return CanonicalRequest(
            protocol=Protocol.WEBSOCKET,
            host=host,
            pathname=WEBSOCKET_PATHNAME,
            href=href,
            method=WEBSOCKET_METHOD,
            body=orjson.dumps(data, option=orjson.OPT_SORT_KEYS),
        )


def parse_target(url: str) -> tuple[str, str, str]:
    """Split an absolute URL into ``(host, pathname, href)``.

    The host is lower-cased and keeps a non-default port. The pathname has
    its dot segments resolved, keeps a trailing slash, and is never empty.
    Fragments are dropped since they never reach the origin.

    Raises:
        UnresolvableTargetError: If the URL is not absolute.
    """
    try:
        parts = urlsplit(url)
        port = parts.port
    except ValueError as e:
        raise UnresolvableTargetError(f"Invalid target url {url!r}: {e}") from e

    scheme = parts.scheme.lower()
    if scheme not in _DEFAULT_PORTS or not parts.hostname:
        raise UnresolvableTargetError(f"Target url is not absolute: {url!r}")

    hostname = parts.hostname
    if ":" in hostname:
        hostname = f"[{hostname}]"
    host = hostname if port in (None, _DEFAULT_PORTS[scheme]) else f"{hostname}:{port}"

    pathname = _normalize_pathname(parts.path)
    href = f"{scheme}://{host}{pathname}"
    if parts.query:
        href = f"{href}?{parts.query}"
    return host, pathname, href


def _normalize_pathname(path: str) -> str:
    if not path:
        return "/"
    trailing = path.endswith(("/", "/.", "/.."))
    normalized = posixpath.normpath(path)
    if normalized in (".", "/"):
        return "/"
    if not normalized.startswith("/"):
        normalized = f"/{normalized}"
    return f"{normalized}/" if trailing else normalized


def _fix_scheme_slashes(url: str) -> str:
    match = _ABSOLUTE_URL_RE.match(url)
    if match is None:
        return url
    return f"{match['scheme']}://{match['rest']}"


def _with_query(url: str, query: str) -> str:
    if not query:
        return url
    separator = "&" if "?" in url else "?"
    return f"{url}{separator}{query}"
