"""Redirect-following request pipeline for httphop."""

from .body import CapturedBody
from .client import HopClient, build_spec, fetch_blocking, request
from .orchestrator import EventEmitter, RequestHandle, RequestOrchestrator, ResponseCallback
from .redirects import (
    DOWNGRADE_STATUS_CODES,
    REDIRECT_STATUS_CODES,
    Decision,
    Follow,
    Terminal,
    decide,
    is_redirect,
)

__all__ = [
    "CapturedBody",
    "Decision",
    "DOWNGRADE_STATUS_CODES",
    "EventEmitter",
    "Follow",
    "HopClient",
    "REDIRECT_STATUS_CODES",
    "RequestHandle",
    "RequestOrchestrator",
    "ResponseCallback",
    "Terminal",
    "build_spec",
    "decide",
    "fetch_blocking",
    "is_redirect",
    "request",
]
