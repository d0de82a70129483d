"""HTTP gateway that routes front-end requests to the auth, chat and admin services."""

from __future__ import annotations

import argparse
import logging
import urllib.error
import urllib.request
from dataclasses import dataclass, field
from http.server import BaseHTTPRequestHandler, ThreadingHTTPServer
from typing import Callable, Optional

logger = logging.getLogger(__name__)

AUTH_BACKEND = "http://localhost:8880"
CHAT_BACKEND = "http://localhost:8881"
ADMIN_BACKEND = "http://localhost:8882"

DEFAULT_HOST = "0.0.0.0"
DEFAULT_PORT = 8080

ALLOW_ORIGIN = ("Access-Control-Allow-Origin", "*")
PREFLIGHT_HEADERS = {
    "Access-Control-Allow-Origin": "*",
    "Access-Control-Allow-Methods": "GET, POST, PUT, DELETE, OPTIONS",
    "Access-Control-Allow-Headers": "Content-Type, Authorization",
}

MISSING_LOGIN_ID = "login_id가 없습니다."
ROOT_MESSAGE = "API Gateway is running"


class BackendUnavailable(Exception):
    """Raised by a forwarder when the backend gave no response at all."""


@dataclass(frozen=True)
class BackendReply:
    """What a backend service answered."""

    status: int
    body: bytes
    content_type: str = ""


@dataclass
class GatewayResponse:
    """The response the gateway sends back to its client."""

    status: int = 200
    body: bytes = b""
    content_type: Optional[str] = None
    headers: dict[str, str] = field(default_factory=dict)


@dataclass(frozen=True)
class Route:
    """One forwarding rule.

    ``pattern`` and ``target`` may hold ``:name`` segments; the values captured
    from the request path are substituted into the target.  With ``json_reply``
    the backend body is always returned as JSON with status 200; otherwise the
    backend content type is passed on, and its status too when ``copy_status``.
    """

    method: str
    pattern: str
    backend: str
    target: str
    error: str
    copy_status: bool = True
    json_reply: bool = False


Forwarder = Callable[[str, str, Optional[bytes], Optional[str]], BackendReply]


def urllib_forwarder(method, url, body, content_type):
    """Send one request with urllib and return the backend's reply."""
    request = urllib.request.Request(url, data=body, method=method)
    if content_type:
        request.add_header("Content-Type", content_type)
    try:
        with urllib.request.urlopen(request, timeout=30) as reply:
            return BackendReply(
                reply.status, reply.read(), reply.headers.get("Content-Type", "")
            )
    except urllib.error.HTTPError as exc:
        with exc:
            return BackendReply(
                exc.code, exc.read(), exc.headers.get("Content-Type", "")
            )
    except (urllib.error.URLError, OSError) as exc:
        raise BackendUnavailable(str(exc)) from exc


ROUTES: tuple[Route, ...] = (
    Route("POST", "/login", AUTH_BACKEND, "/login",
          "Error fetching data from /login", copy_status=False),
    Route("POST", "/signIn", AUTH_BACKEND, "/signIn",
          "Error fetching data from /signIn"),
    Route("POST", "/idCheck", AUTH_BACKEND, "/idCheck",
          "Error fetching data from /signIn"),
    Route("GET", "/statCheck/:login_id", AUTH_BACKEND, "/statCheck/:login_id",
          "Error fetching data from /statCheck", json_reply=True),
    Route("GET", "/getName/:login_id", AUTH_BACKEND, "/getName/:login_id",
          "Error fetching data from /statCheck", json_reply=True),
    Route("GET", "/showId/:login_id", AUTH_BACKEND, "/showId/:login_id",
          "Error fetching data from /statCheck", json_reply=True),
    Route("PUT", "/chat/admin/ban", ADMIN_BACKEND, "/chat/admin/ban",
          "Error fetching data from /signIn"),
    Route("GET", "/chat/admin/admin_select", ADMIN_BACKEND, "/chat/admin/admin_select",
          "Error fetching data from /chat/admin/user_select", json_reply=True),
    Route("PUT", "/chat/admin/user_delete", ADMIN_BACKEND, "/chat/admin/user_delete",
          "Error fetching data from /chat/admin/user_delete"),
    Route("PUT", "/chat/admin/unban", ADMIN_BACKEND, "/chat/admin/unban",
          "Error fetching data from /chat/admin/unban"),
    Route("PUT", "/chat/admin/status_update", ADMIN_BACKEND, "/chat/admin/status_update",
          "Error fetching data from /chat/admin/unban"),
    Route("PUT", "/chat/admin/change_pw", ADMIN_BACKEND, "/chat/admin/change_pw",
          "Error fetching data from /chat/admin/unban"),
    Route("POST", "/chat/admin/user_select", ADMIN_BACKEND, "/chat/admin/user_select",
          "Error fetching data from /signIn"),
    Route("POST", "/chat/room", CHAT_BACKEND, "/chat/room",
          "Error fetching data from /login"),
    Route("GET", "/chat/messages", CHAT_BACKEND, "/chat/messages",
          "Error fetching data from /chat/admin/user_select", json_reply=True),
    Route("POST", "/chat/enter", CHAT_BACKEND, "/chat/enter",
          "Error fetching data from /signIn"),
)

PREFLIGHT_PATTERNS: tuple[str, ...] = (
    "/login",
    "/signIn",
    "/idCheck",
    "/statCheck/:login_id",
    "/getName/:login_id",
    "/showId/:login_id",
    "/chat/admin/ban",
    "/chat/admin/user_select",
    "/chat/admin/user_delete",
    "/chat/admin/unban",
    "/chat/admin/status_update",
    "/chat/room",
    "/chat/messages",
    "/chat/enter",
    "/chat/admin/change_pw",
)


def _match_pattern(pattern: str, path: str) -> Optional[dict[str, str]]:
    """Match ``path`` against a pattern with ``:name`` segments."""
    wanted = pattern.split("/")
    given = path.split("/")
    if len(wanted) != len(given):
        return None
    params: dict[str, str] = {}
    for expected, actual in zip(wanted, given):
        if expected.startswith(":"):
            params[expected[1:]] = actual
        elif expected != actual:
            return None
    return params


def _fill(template: str, params: dict[str, str]) -> str:
    return "/".join(
        params.get(part[1:], "") if part.startswith(":") else part
        for part in template.split("/")
    )


class Gateway:
    """Routes requests to backend services through a forwarder callable."""

    def __init__(self, forwarder=urllib_forwarder):
        self.forwarder: Forwarder = forwarder
        self.routes = ROUTES
        self.preflight = PREFLIGHT_PATTERNS

    def match(self, method, path):
        """Return ``(route, params)`` for a forwarding route, or None."""
        method = method.upper()
        for route in self.routes:
            if route.method != method:
                continue
            params = _match_pattern(route.pattern, path)
            if params is not None:
                return route, params
        return None

    def handle(self, method, path, body=b""):
        """Answer one client request."""
        method = method.upper()
        path = path.split("?", 1)[0]

        if method == "OPTIONS":
            if any(_match_pattern(p, path) is not None for p in self.preflight):
                return GatewayResponse(status=204, headers=dict(PREFLIGHT_HEADERS))
            return GatewayResponse(status=404)

        if method == "GET" and path == "/":
            return GatewayResponse(body=ROOT_MESSAGE.encode(), content_type="text/plain")

        found = self.match(method, path)
        if found is None:
            return GatewayResponse(status=404)
        route, params = found

        if any(not value for value in params.values()):
            return GatewayResponse(
                status=400, body=MISSING_LOGIN_ID.encode(), content_type="text/plain"
            )

        url = route.backend + _fill(route.target, params)
        forwards_body = method in ("POST", "PUT")
        try:
            reply = self.forwarder(
                method,
                url,
                (body or b"") if forwards_body else None,
                "application/json" if forwards_body else None,
            )
        except BackendUnavailable as exc:
            logger.warning("backend %s unavailable: %s", url, exc)
            return GatewayResponse(
                status=500,
                body=route.error.encode(),
                content_type="text/plain",
                headers=dict([ALLOW_ORIGIN]),
            )

        headers = dict([ALLOW_ORIGIN])
        if route.json_reply:
            return GatewayResponse(
                body=reply.body, content_type="application/json", headers=headers
            )
        logger.info("Backend response: %s", reply.body.decode("utf-8", "replace"))
        return GatewayResponse(
            status=reply.status if route.copy_status else 200,
            body=reply.body,
            content_type=reply.content_type,
            headers=headers,
        )


def make_handler(gateway):
    """Build a request handler class serving ``gateway``."""

    class GatewayHandler(BaseHTTPRequestHandler):
        def _serve(self) -> None:
            length = int(self.headers.get("Content-Length") or 0)
            body = self.rfile.read(length) if length else b""
            response = gateway.handle(self.command, self.path, body)
            self.send_response(response.status)
            for name, value in response.headers.items():
                self.send_header(name, value)
            if response.content_type:
                self.send_header("Content-Type", response.content_type)
            self.send_header("Content-Length", str(len(response.body)))
            self.end_headers()
            if response.body and self.command != "HEAD":
                self.wfile.write(response.body)

        do_GET = do_POST = do_PUT = do_DELETE = do_OPTIONS = _serve

        def log_message(self, format, *args):  # noqa: A002
            logger.debug("%s - %s", self.address_string(), format % args)

    return GatewayHandler


def main(argv=None):
    """Run the gateway server."""
    parser = argparse.ArgumentParser(description="API gateway for the chat services")
    parser.add_argument("--host", default=DEFAULT_HOST)
    parser.add_argument("--port", type=int, default=DEFAULT_PORT)
    args = parser.parse_args(argv)

    logging.basicConfig(level=logging.INFO, format="%(message)s")
    server = ThreadingHTTPServer((args.host, args.port), make_handler(Gateway()))
    print(f"API Gateway 실행 중: http://localhost:{args.port}", flush=True)
    try:
        server.serve_forever()
    except KeyboardInterrupt:
        pass
    finally:
        server.server_close()
    return 0


if __name__ == "__main__":
    raise SystemExit(main())