"""Middleware activated by the server facade.

CORS is Starlette's ``CORSMiddleware``. Security headers, body decoding and
cookie parsing are small pure-ASGI middleware defined here. Each kind is
built through ``build_middleware`` so option errors surface at the
activation call instead of on the first request.
"""

from __future__ import annotations

import base64
import hashlib
import hmac
import inspect
import json
import re
from collections.abc import Callable, Mapping
from typing import Any
from urllib.parse import parse_qsl

from starlette.datastructures import Headers, MutableHeaders
from starlette.middleware import Middleware
from starlette.middleware.cors import CORSMiddleware
from starlette.requests import cookie_parser
from starlette.responses import JSONResponse
from starlette.types import ASGIApp, Message, Receive, Scope, Send

from servekit.config.defaults import (
    DEFAULT_BODY_LIMIT,
    DEFAULT_CORS_OPTIONS,
    DEFAULT_SECURITY_HEADERS,
)
from servekit.serve.models import MiddlewareKind

_SIZE_PATTERN = re.compile(r"^\s*(\d+(?:\.\d+)?)\s*(b|kb|mb|gb)?\s*$", re.IGNORECASE)
_SIZE_UNITS = {"b": 1, "kb": 1024, "mb": 1024**2, "gb": 1024**3}

# Express-style CORS option names -> Starlette CORSMiddleware arguments
CORS_OPTION_ALIASES = {
    "origin": "allow_origins",
    "origins": "allow_origins",
    "methods": "allow_methods",
    "allowedHeaders": "allow_headers",
    "exposedHeaders": "expose_headers",
    "credentials": "allow_credentials",
    "maxAge": "max_age",
}
_CORS_LIST_OPTIONS = ("allow_origins", "allow_methods", "allow_headers", "expose_headers")


def parse_size(value: int | str) -> int:
    """Parse a byte size such as ``100kb`` or ``1.5mb`` into bytes.

    Raises:
        ValueError: If the value is not a recognised size
    """
    if isinstance(value, int):
        return value
    match = _SIZE_PATTERN.match(value)
    if match is None:
        raise ValueError(f"Invalid size: {value!r}")
    number, unit = match.groups()
    return int(float(number) * _SIZE_UNITS[(unit or "b").lower()])


def _header_key(name: str) -> str:
    # xFrameOptions / x_frame_options / X-Frame-Options -> x-frame-options
    name = re.sub(r"(?<=[a-z0-9])([A-Z])", r"-\1", name)
    return name.replace("_", "-").lower()


def _error_response(status_code: int, detail: str) -> JSONResponse:
    return JSONResponse({"detail": detail}, status_code=status_code)


class SecurityHeadersMiddleware:
    """Adds a default set of security-related response headers.

    Headers already set by the handler are left untouched, and any
    ``X-Powered-By`` header is removed.

    Args:
        app: Wrapped ASGI application
        headers: Overrides keyed by header name (``X-Frame-Options``,
            ``x_frame_options`` and ``xFrameOptions`` are equivalent). A
            string replaces the default value, ``False`` or ``None`` drops
            the header, ``True`` keeps the default.
    """

    def __init__(
        self,
        app: ASGIApp,
        headers: Mapping[str, str | bool | None] | None = None,
    ) -> None:
        self.app = app
        resolved = {
            name.lower(): value for name, value in DEFAULT_SECURITY_HEADERS.items()
        }
        for name, value in (headers or {}).items():
            key = _header_key(name)
            if value is True:
                continue
            if value is False or value is None:
                resolved.pop(key, None)
            else:
                resolved[key] = str(value)
        self.headers = resolved

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        async def send_with_headers(message: Message) -> None:
            if message["type"] == "http.response.start":
                headers = MutableHeaders(scope=message)
                for name, value in self.headers.items():
                    headers.setdefault(name, value)
                if "x-powered-by" in headers:
                    del headers["x-powered-by"]
            await send(message)

        await self.app(scope, receive, send_with_headers)


def _parse_json(body: bytes, strict: bool) -> Any:
    if not body.strip():
        return {}
    parsed = json.loads(body)
    if strict and not isinstance(parsed, (dict, list)):
        raise ValueError("JSON body must be an object or an array")
    return parsed


def _parse_urlencoded(body: bytes) -> dict[str, Any]:
    result: dict[str, Any] = {}
    for key, value in parse_qsl(body.decode("utf-8"), keep_blank_values=True):
        if key not in result:
            result[key] = value
        elif isinstance(result[key], list):
            result[key].append(value)
        else:
            result[key] = [result[key], value]
    return result


def _replay(body: bytes, receive: Receive) -> Receive:
    sent = False

    async def replay() -> Message:
        nonlocal sent
        if not sent:
            sent = True
            return {"type": "http.request", "body": body, "more_body": False}
        return await receive()

    return replay


class BodyParserMiddleware:
    """Decodes JSON and urlencoded request bodies into ``request.state.body``.

    Requests with other content types pass through untouched. The raw body
    stays readable by the handler.

    Args:
        app: Wrapped ASGI application
        limit: Maximum body size in bytes (413 when exceeded)
        json: Decode ``application/json`` and ``*+json`` bodies
        urlencoded: Decode ``application/x-www-form-urlencoded`` bodies
        strict: Only accept JSON objects and arrays
    """

    def __init__(
        self,
        app: ASGIApp,
        limit: int | str = DEFAULT_BODY_LIMIT,
        json: bool = True,
        urlencoded: bool = True,
        strict: bool = True,
    ) -> None:
        self.app = app
        self.limit = parse_size(limit)
        self.json = json
        self.urlencoded = urlencoded
        self.strict = strict

    def _parser_for(self, content_type: str) -> Callable[[bytes], Any] | None:
        media_type = content_type.split(";", 1)[0].strip().lower()
        if self.json and (
            media_type == "application/json" or media_type.endswith("+json")
        ):
            return lambda body: _parse_json(body, self.strict)
        if self.urlencoded and media_type == "application/x-www-form-urlencoded":
            return _parse_urlencoded
        return None

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        headers = Headers(scope=scope)
        parser = self._parser_for(headers.get("content-type", ""))
        if parser is None:
            await self.app(scope, receive, send)
            return

        declared = headers.get("content-length", "")
        if declared.isdigit() and int(declared) > self.limit:
            await _error_response(413, "Request entity too large")(
                scope, receive, send
            )
            return

        chunks: list[bytes] = []
        size = 0
        more_body = True
        while more_body:
            message = await receive()
            if message["type"] == "http.disconnect":
                return
            chunk = message.get("body", b"")
            size += len(chunk)
            if size > self.limit:
                await _error_response(413, "Request entity too large")(
                    scope, receive, send
                )
                return
            chunks.append(chunk)
            more_body = message.get("more_body", False)

        body = b"".join(chunks)
        try:
            parsed = parser(body)
        except ValueError as e:
            await _error_response(400, f"Malformed request body: {e}")(
                scope, receive, send
            )
            return

        scope.setdefault("state", {})["body"] = parsed
        await self.app(scope, _replay(body, receive), send)


def sign_cookie(value: str, secret: str) -> str:
    """Sign a cookie value with HMAC-SHA256 (``value.signature``)."""
    digest = hmac.new(secret.encode(), value.encode(), hashlib.sha256).digest()
    return f"{value}.{base64.b64encode(digest).decode().rstrip('=')}"


def unsign_cookie(signed: str, secret: str) -> str | bool:
    """Verify a value produced by ``sign_cookie``.

    Returns:
        The original value, or False if the signature does not match
    """
    value, separator, _ = signed.rpartition(".")
    if not separator:
        return False
    if hmac.compare_digest(sign_cookie(value, secret), signed):
        return value
    return False


def _decode_json_cookie(value: Any) -> Any:
    if not isinstance(value, str) or not value.startswith("j:"):
        return value
    try:
        return json.loads(value[2:])
    except ValueError:
        return value


class CookieParserMiddleware:
    """Exposes parsed cookies as ``request.state.cookies``.

    With a secret, cookies whose value starts with ``s:`` are verified and
    moved to ``request.state.signed_cookies`` (the unsigned value, or False
    when no secret matches). Values starting with ``j:`` are JSON-decoded.

    Args:
        app: Wrapped ASGI application
        secret: Signing secret, or a list of secrets tried in order
    """

    def __init__(self, app: ASGIApp, secret: str | list[str] | None = None) -> None:
        self.app = app
        if secret is None:
            self.secrets: list[str] = []
        elif isinstance(secret, str):
            self.secrets = [secret]
        else:
            self.secrets = list(secret)

    def _unsign(self, value: str) -> str | bool:
        for secret in self.secrets:
            result = unsign_cookie(value, secret)
            if result is not False:
                return result
        return False

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] in ("http", "websocket"):
            headers = Headers(scope=scope)
            cookies: dict[str, Any] = cookie_parser(headers.get("cookie", ""))
            signed: dict[str, Any] = {}
            if self.secrets:
                for name, value in list(cookies.items()):
                    if value.startswith("s:"):
                        signed[name] = self._unsign(value[2:])
                        del cookies[name]

            state = scope.setdefault("state", {})
            state["cookies"] = {k: _decode_json_cookie(v) for k, v in cookies.items()}
            state["signed_cookies"] = {
                k: _decode_json_cookie(v) for k, v in signed.items()
            }

        await self.app(scope, receive, send)


def cors_options(options: Mapping[str, Any]) -> dict[str, Any]:
    """Merge CORS options over the defaults, translating Express-style names."""
    resolved: dict[str, Any] = dict(DEFAULT_CORS_OPTIONS)
    for key, value in options.items():
        key = CORS_OPTION_ALIASES.get(key, key)
        if key == "allow_origins" and value is True:
            value = ["*"]
        elif key in _CORS_LIST_OPTIONS and isinstance(value, str):
            value = [value]
        resolved[key] = value
    return resolved


_MIDDLEWARE_CLASSES: dict[MiddlewareKind, type] = {
    MiddlewareKind.CORS: CORSMiddleware,
    MiddlewareKind.HELMET: SecurityHeadersMiddleware,
    MiddlewareKind.BODY_PARSER: BodyParserMiddleware,
    MiddlewareKind.COOKIE_PARSER: CookieParserMiddleware,
}


def build_middleware(
    kind: MiddlewareKind,
    options: Mapping[str, Any] | None = None,
) -> Middleware:
    """Build a Starlette ``Middleware`` entry for one of the built-in kinds.

    The options are checked against the middleware constructor, so an unknown
    option raises ``TypeError`` here rather than on the first request.

    Args:
        kind: Middleware kind (not CUSTOM)
        options: Options passed through to the middleware

    Returns:
        Middleware entry ready to insert into the application

    Raises:
        TypeError: If an option is not accepted by the middleware
        ValueError: If the kind has no factory or an option value is invalid
    """
    if kind not in _MIDDLEWARE_CLASSES:
        raise ValueError(f"No built-in middleware for kind '{kind.value}'")

    cls = _MIDDLEWARE_CLASSES[kind]
    kwargs: dict[str, Any] = dict(options or {})
    if kind is MiddlewareKind.CORS:
        kwargs = cors_options(kwargs)
    elif kind is MiddlewareKind.HELMET:
        kwargs = {"headers": kwargs} if kwargs else {}
    elif kind is MiddlewareKind.BODY_PARSER and "limit" in kwargs:
        kwargs["limit"] = parse_size(kwargs["limit"])

    inspect.signature(cls).bind(None, **kwargs)
    return Middleware(cls, **kwargs)


