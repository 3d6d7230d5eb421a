"""Pydantic configuration models for httphop."""

import re
from typing import Optional

from pydantic import BaseModel, Field, field_validator

# RFC 7230 token characters
_METHOD_PATTERN = re.compile(r"^[!#$%&'*+\-.^_`|~0-9A-Za-z]+$")

DEFAULT_MAX_REDIRECTS = 10


class RequestOptions(BaseModel):
    """Per-request options for a (possibly redirect-following) operation."""

    method: str = Field("GET", description="HTTP method of the first hop")
    follow_redirects: bool = Field(False, description="Follow 300/301/302/303/307 responses")
    max_redirects: int = Field(
        DEFAULT_MAX_REDIRECTS,
        ge=0,
        description="Maximum redirects followed before failing",
    )
    headers: dict[str, str] = Field(default_factory=dict, description="Extra request headers")
    preserve_method: bool = Field(
        False,
        description="Keep the original method and body on every redirect status, not only 307",
    )
    body: Optional[bytes] = Field(
        None,
        description="Complete request body; written and ended automatically when set",
    )

    model_config = {"extra": "forbid"}

    @field_validator("method")
    @classmethod
    def validate_method(cls, v: str) -> str:
        """Upper-case the method and reject non-token characters."""
        v = v.strip().upper()
        if not _METHOD_PATTERN.match(v):
            raise ValueError(f"Invalid HTTP method: {v!r}")
        return v


class NetworkConfig(BaseModel):
    """Settings for the aiohttp-backed transport."""

    timeout: float = Field(30.0, gt=0, description="Seconds allowed between reads of a hop's response")
    connect_timeout: float = Field(10.0, gt=0, description="Seconds allowed to establish a connection")
    user_agent: Optional[str] = Field(None, description="Custom User-Agent string")
    proxy: Optional[str] = Field(None, description="Proxy URL (http://...)")
    limit_per_host: int = Field(10, ge=1, description="Maximum concurrent connections per host")

    model_config = {"extra": "forbid"}
