"""Request-side data model: target URLs and per-hop request specs."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field, replace
from types import MappingProxyType
from urllib.parse import urlsplit

SUPPORTED_PROTOCOLS = frozenset({"http", "https"})

DEFAULT_PORTS = {"http": 80, "https": 443}


@dataclass(frozen=True)
class TargetUrl:
    """
    An absolute HTTP(S) location split into protocol, host and path.

    Attributes:
        protocol: "http" or "https" (no trailing colon)
        host: Hostname or IP literal
        path: Path including any query string, always starting with "/"
        port: Explicit port, or None for the protocol default

    Example:
        >>> url = TargetUrl.parse("http://originhost/some/resource?x=1")
        >>> url.host, url.path
        ('originhost', '/some/resource?x=1')
        >>> str(url)
        'http://originhost/some/resource?x=1'
    """

    protocol: str
    host: str
    path: str = "/"
    port: int | None = None

    def __post_init__(self) -> None:
        protocol = self.protocol.lower().rstrip(":")
        if protocol not in SUPPORTED_PROTOCOLS:
            raise ValueError(f"Unsupported protocol '{self.protocol}' (allowed: http, https)")
        if not self.host:
            raise ValueError("URL has no host")
        object.__setattr__(self, "protocol", protocol)
        if not self.path.startswith("/"):
            object.__setattr__(self, "path", "/" + self.path)

    @classmethod
    def parse(cls, url: str) -> TargetUrl:
        """
        Parse an absolute URL string.

        Raises:
            ValueError: If the URL is relative, has no host, or uses
                a protocol other than http/https
        """
        parts = urlsplit(url.strip())
        if not parts.scheme or not parts.netloc:
            raise ValueError(f"Not an absolute URL: {url!r}")

        path = parts.path or "/"
        if parts.query:
            path = f"{path}?{parts.query}"

        return cls(
            protocol=parts.scheme,
            host=parts.hostname or "",
            path=path,
            port=parts.port,
        )

    @property
    def netloc(self) -> str:
        """Host plus port when the port is not the protocol default."""
        host = f"[{self.host}]" if ":" in self.host else self.host
        if self.port is None or self.port == DEFAULT_PORTS[self.protocol]:
            return host
        return f"{host}:{self.port}"

    def __str__(self) -> str:
        return f"{self.protocol}://{self.netloc}{self.path}"


# Headers that describe the request body and must go when the body is dropped
BODY_HEADERS = frozenset({"content-length", "content-type", "transfer-encoding"})


@dataclass(frozen=True)
class RequestSpec:
    """
    Immutable description of one hop's request.

    Only ``url`` changes between hops, except when a redirect downgrades
    the method, in which case ``method`` and the body headers change too.
    """

    method: str
    url: TargetUrl
    headers: Mapping[str, str] = field(default_factory=dict)
    follow_redirects: bool = False
    max_redirects: int = 10
    preserve_method: bool = False

    def __post_init__(self) -> None:
        object.__setattr__(self, "method", self.method.upper())
        object.__setattr__(self, "headers", MappingProxyType(dict(self.headers)))

    def with_url(self, url: TargetUrl, method: str | None = None, drop_body: bool = False) -> RequestSpec:
        """
        Build the RequestSpec for the next hop.

        Args:
            url: The redirect target
            method: Replacement method, or None to keep the current one
            drop_body: If True, body-describing headers are removed

        Returns:
            New RequestSpec for the next hop
        """
        headers = dict(self.headers)
        if drop_body:
            headers = {k: v for k, v in headers.items() if k.lower() not in BODY_HEADERS}
        return replace(self, url=url, method=method or self.method, headers=headers)
