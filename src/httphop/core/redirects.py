"""Redirect policy: decide whether a response is followed, and how."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from typing import Union

from ..errors import MalformedRedirect
from ..models.request import TargetUrl

# 308 is not followed; it is delivered as a terminal response
REDIRECT_STATUS_CODES = frozenset({300, 301, 302, 303, 307})

# Statuses that turn a non-GET/HEAD request into a body-less GET
DOWNGRADE_STATUS_CODES = frozenset({300, 301, 302, 303})

SAFE_METHODS = frozenset({"GET", "HEAD"})


@dataclass(frozen=True)
class Follow:
    """
    Follow the redirect.

    Attributes:
        method: Method for the next hop
        location: Absolute URL of the next hop, verbatim from Location
        drop_body: If True, the next hop is sent without a body
    """

    method: str
    location: str
    drop_body: bool = False

    @property
    def url(self) -> TargetUrl:
        return TargetUrl.parse(self.location)


@dataclass(frozen=True)
class Terminal:
    """Deliver this response to the caller."""


Decision = Union[Follow, Terminal]


def is_redirect(status_code: int) -> bool:
    """Check if a status code is one this policy can follow."""
    return status_code in REDIRECT_STATUS_CODES


def _get_location(headers: Mapping[str, str]) -> str | None:
    # aiohttp headers are case-insensitive; plain dicts from tests may not be
    location = headers.get("Location")
    if location is None:
        location = headers.get("location")
    return location


def decide(
    status_code: int,
    headers: Mapping[str, str],
    current_method: str,
    follow_redirects: bool,
    *,
    preserve_method: bool = False,
) -> Decision:
    """
    Decide what to do with a response.

    Method handling for followed redirects:
        - 300, 301, 302, 303: any method other than GET/HEAD becomes a
          GET without a body
        - 307: method and body are kept
        - GET and HEAD are never changed (a GET body is replayed)
        - preserve_method=True keeps method and body for every status

    Args:
        status_code: Status of the response just received
        headers: Headers of that response
        current_method: Method of the request that produced it
        follow_redirects: Whether the caller asked for redirects to be followed
        preserve_method: Disable the method downgrade entirely

    Returns:
        Follow(...) or Terminal()

    Raises:
        MalformedRedirect: If a followable redirect has no usable Location
    """
    if not follow_redirects or status_code not in REDIRECT_STATUS_CODES:
        return Terminal()

    location = _get_location(headers)
    if location is None or not location.strip():
        raise MalformedRedirect(status_code)

    location = location.strip()
    try:
        TargetUrl.parse(location)
    except ValueError as err:
        raise MalformedRedirect(status_code, location) from err

    method = current_method.upper()
    if (
        not preserve_method
        and status_code in DOWNGRADE_STATUS_CODES
        and method not in SAFE_METHODS
    ):
        return Follow(method="GET", location=location, drop_body=True)

    return Follow(method=method, location=location)
