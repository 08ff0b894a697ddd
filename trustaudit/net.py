"""HTTP fetch collaborator, URL helpers and the document parser."""

from __future__ import annotations

import ipaddress
import logging
import socket
from dataclasses import dataclass, field
from typing import Any, Protocol
from urllib.parse import urljoin, urlparse, urlunparse

import requests
from bs4 import BeautifulSoup

from .errors import FetchError, FetchTimeout

logger = logging.getLogger(__name__)

USER_AGENT = "Mozilla/5.0 (compatible; TrustAuditBot/1.0; +https://github.com/trustaudit/trustaudit)"
HEADERS = {
    "User-Agent": USER_AGENT,
    "Accept": "text/html,application/xhtml+xml,application/xml;q=0.9,*/*;q=0.8",
    "Accept-Language": "uk,en-US;q=0.8,en;q=0.6",
}
MAX_REDIRECT_HOPS = 10


@dataclass
class FetchResponse:
    status: int
    text: str = ""
    url: str = ""
    headers: dict[str, str] = field(default_factory=dict)

    @property
    def ok(self) -> bool:
        return 200 <= self.status < 300

    @property
    def content_type(self) -> str:
        return self.headers.get("content-type", "")


class HttpClient(Protocol):
    def get(self, url: str, timeout: float, params: dict[str, Any] | None = None) -> FetchResponse: ...

    def head(self, url: str, timeout: float) -> FetchResponse: ...


def normalize_url(raw: str) -> str:
    value = raw.strip()
    parsed = urlparse(value)
    if not parsed.scheme:
        value = f"https://{value}"
        parsed = urlparse(value)
    if parsed.scheme not in ("http", "https"):
        raise ValueError(f"Unsupported URL scheme: {parsed.scheme}")
    if not parsed.hostname:
        raise ValueError(f"URL has no host: {raw!r}")
    netloc = parsed.netloc.lower()
    clean_path = parsed.path or "/"
    return urlunparse((parsed.scheme.lower(), netloc, clean_path, "", parsed.query, ""))


def canonical_host(host: str | None) -> str:
    value = (host or "").strip().lower().rstrip(".")
    if value.startswith("www."):
        return value[4:]
    return value


def domain_key(url: str) -> str:
    return canonical_host(urlparse(url).hostname)


def same_host(url_a: str, url_b: str) -> bool:
    a = canonical_host(urlparse(url_a).hostname)
    b = canonical_host(urlparse(url_b).hostname)
    return bool(a) and a == b


def absolute_url(href: str, base_url: str) -> str | None:
    """Resolve ``href`` against ``base_url``; ``None`` when it is not http(s)."""
    try:
        merged = urljoin(base_url, href.strip())
    except ValueError:
        return None
    parsed = urlparse(merged)
    if parsed.scheme not in ("http", "https") or not parsed.hostname:
        return None
    return urlunparse((parsed.scheme, parsed.netloc, parsed.path or "/", "", parsed.query, ""))


def is_public_target(url: str) -> bool:
    host = urlparse(url).hostname
    if not host:
        return False
    try:
        info = socket.getaddrinfo(host, None)
    except socket.gaierror:
        return False
    for _, _, _, _, sockaddr in info:
        ip_text = sockaddr[0]
        try:
            ip = ipaddress.ip_address(ip_text)
        except ValueError:
            continue
        if ip.is_private or ip.is_loopback or ip.is_reserved or ip.is_link_local or ip.is_multicast:
            continue
        return True
    return False


def parse_document(markup: str) -> BeautifulSoup:
    try:
        return BeautifulSoup(markup, "lxml")
    except Exception:
        return BeautifulSoup(markup, "html.parser")


class RequestsClient:
    """``HttpClient`` backed by a shared ``requests.Session``.

    Redirects are followed by hand so that every hop can be checked against
    ``is_public_target``. ``head`` never follows redirects: the duplicate
    checks need to see the 3xx itself.
    """

    def __init__(self, session: requests.Session | None = None, public_only: bool = True) -> None:
        self.session = session or requests.Session()
        self.session.headers.update(HEADERS)
        self.public_only = public_only

    def _guard(self, url: str) -> None:
        if self.public_only and not is_public_target(url):
            raise FetchError(f"target resolves to non-public or invalid host: {url}")

    def _send(self, method: str, url: str, timeout: float, params: dict[str, Any] | None = None) -> requests.Response:
        try:
            return self.session.request(method, url, params=params, timeout=timeout, allow_redirects=False)
        except requests.exceptions.Timeout as exc:
            raise FetchTimeout(f"timed out after {timeout}s: {url}") from exc
        except requests.exceptions.RequestException as exc:
            raise FetchError(str(exc)) from exc

    def get(self, url: str, timeout: float, params: dict[str, Any] | None = None) -> FetchResponse:
        current_url = url
        redirects = 0
        while True:
            self._guard(current_url)
            response = self._send("GET", current_url, timeout, params)
            if 300 <= response.status_code < 400:
                location = (response.headers.get("Location") or "").strip()
                if not location:
                    break
                if redirects >= MAX_REDIRECT_HOPS:
                    raise FetchError(f"Too many redirects (>{MAX_REDIRECT_HOPS})", status=response.status_code)
                current_url = urljoin(current_url, location)
                params = None
                redirects += 1
                continue
            break
        return FetchResponse(
            status=response.status_code,
            text=response.text,
            url=current_url,
            headers={k.lower(): v for k, v in dict(response.headers).items()},
        )

    def head(self, url: str, timeout: float) -> FetchResponse:
        self._guard(url)
        response = self._send("HEAD", url, timeout)
        return FetchResponse(
            status=response.status_code,
            url=url,
            headers={k.lower(): v for k, v in dict(response.headers).items()},
        )


def fetch_text(client: HttpClient, url: str, timeout: float) -> FetchResponse:
    """GET ``url`` and raise ``FetchError`` unless the response is 2xx."""
    response = client.get(url, timeout)
    if not response.ok:
        raise FetchError(f"HTTP {response.status} for {url}", status=response.status)
    return response
