"""oka executor - request descriptor, curl rendering and HTTP execution."""

import json
import sys
from typing import Any
from urllib.parse import quote, urlsplit, urlunsplit

import requests

METHODS = ("get", "post", "put", "patch", "delete", "head", "options")

APP_KEY_HEADER = "X-Okapi-Key"

# Characters left unescaped by JavaScript's encodeURIComponent
URI_COMPONENT_SAFE = "-_.!~*'()"

CONTENT_TYPES = {
    "json": "application/json",
    "form": "application/x-www-form-urlencoded",
    None: "text/plain",
}


class OkaRequest:
    """Everything needed to send (or print) one request."""

    def __init__(
        self,
        base_url: str,
        uri: str = "",
        method: str = "get",
        app_key: str | None = None,
        strict_ssl: bool = True,
    ):
        self.base_url, self.auth = _split_userinfo(base_url or "")
        self.uri = uri
        self.method = method.lower()
        self.app_key = app_key
        self.strict_ssl = strict_ssl
        self.query: dict[str, Any] = {}
        self.headers: list[tuple[str, str]] = []
        self.has_authorization = False
        self.json: Any = None
        self.form: dict[str, str] | None = None

    @property
    def body_kind(self) -> str | None:
        if self.form is not None:
            return "form"
        if self.json is not None:
            return "json"
        return None

    @property
    def url(self) -> str:
        if self.uri.startswith(("http://", "https://")):
            return self.uri
        path = self.uri if self.uri.startswith("/") else "/" + self.uri
        return self.base_url.rstrip("/") + path

    def add_headers(self, headers: list[tuple[str, str]]) -> None:
        for name, value in headers:
            self.headers.append((name, value))
            if name.lower() == "authorization":
                self.has_authorization = True

    def set_body(self, kind: str, payload: Any) -> None:
        if kind == "form":
            self.form, self.json = payload, None
        else:
            self.json, self.form = payload, None

    def outgoing_headers(self) -> dict[str, str]:
        """Explicit headers plus the application key header.

        The key is left out when the caller brings its own Authorization.
        """
        headers = dict(self.headers)
        if self.app_key and not self.has_authorization:
            headers.setdefault(APP_KEY_HEADER, self.app_key)
        return headers


def _split_userinfo(base_url: str) -> tuple[str, tuple[str, str] | None]:
    """Move ``user:pass@`` out of a base URL into a basic-auth pair."""
    parts = urlsplit(base_url)
    if not parts.username:
        return (base_url, None)
    netloc = parts.hostname or ""
    if parts.port:
        netloc = f"{netloc}:{parts.port}"
    stripped = urlunsplit((parts.scheme, netloc, parts.path, parts.query, parts.fragment))
    return (stripped, (parts.username, parts.password or ""))


# ── curl rendering ───────────────────────────────────────────────────────


def _dquote(s: str) -> str:
    return '"' + str(s).replace("\\", "\\\\").replace('"', '\\"') + '"'


def _squote(s: str) -> str:
    return "'" + s.replace("'", "'\\''") + "'"


def _encode_query(query: dict[str, Any]) -> str:
    return "&".join(f"{k}={quote(str(v), safe=URI_COMPONENT_SAFE)}" for k, v in query.items())


def to_curl(request: OkaRequest, windows: bool | None = None) -> str:
    """Render the request as an equivalent curl command line."""
    if windows is None:
        windows = sys.platform.startswith("win")

    url = request.url
    if request.query:
        url += "?" + _encode_query(request.query)

    flags = "-i" if request.strict_ssl else "-ki"
    parts = [
        f"curl {flags} -X {request.method.upper()} {_dquote(url)}",
        "-H " + _dquote(f"Content-Type: {CONTENT_TYPES[request.body_kind]}"),
    ]
    for name, value in request.headers:
        if name.lower() == "content-type":
            continue
        parts.append("-H " + _dquote(f"{name}: {value}"))
    if request.app_key and not request.has_authorization:
        parts.append("-H " + _dquote(f"{APP_KEY_HEADER}: {request.app_key}"))
    if request.auth:
        parts.append("-u " + _dquote("%s:%s" % request.auth))
    if request.form is not None:
        for name, value in request.form.items():
            parts.append("-d " + _dquote(f"{name}={value}"))
    elif request.json is not None:
        parts.append("-d " + _squote(json.dumps(request.json, ensure_ascii=False)))

    sep = " " if windows else " \\\n\t"
    return sep.join(parts)


# ── Execution ────────────────────────────────────────────────────────────


class RequestResult:
    """Result of an HTTP request."""

    def __init__(self):
        self.status_code: int = 0
        self.headers: dict[str, str] = {}
        self.body: Any = None  # parsed JSON or raw text
        self.error: str | None = None

    @property
    def ok(self) -> bool:
        return self.error is None and 0 < self.status_code < 400


def execute_request(request: OkaRequest, timeout: int = 30) -> RequestResult:
    """Send the request and return a structured result.

    - Attempts to parse response as JSON
    - Falls back to raw text
    - Never raises - transport failures land in the error field

    HTTP error statuses are not errors here; callers check ``result.ok``.
    """
    result = RequestResult()

    try:
        kwargs: dict[str, Any] = {
            "method": request.method.upper(),
            "url": request.url,
            "params": request.query or None,
            "headers": request.outgoing_headers(),
            "verify": request.strict_ssl,
            "auth": request.auth,
            "timeout": timeout,
            "allow_redirects": True,
        }
        if request.form is not None:
            kwargs["data"] = request.form
        elif request.json is not None:
            kwargs["json"] = request.json

        resp = requests.request(**kwargs)

        result.status_code = resp.status_code
        result.headers = dict(resp.headers)
        try:
            result.body = resp.json()
        except ValueError:
            result.body = resp.text

    except requests.exceptions.Timeout:
        result.error = f"Request timed out after {timeout}s"
    except requests.exceptions.ConnectionError as e:
        result.error = f"Connection error: {e}"
    except requests.exceptions.RequestException as e:
        result.error = f"Request failed: {e}"

    return result
