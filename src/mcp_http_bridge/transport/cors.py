"""
Cross-origin access policy.

Pure decision logic: given the request Origin and the CORS configuration,
produce the access-control headers to attach to a response.
"""

from dataclasses import dataclass, field
from typing import Dict, List, Optional

import structlog

from ..config.settings import CorsConfig

logger = structlog.get_logger(__name__)

WILDCARD = "*"


@dataclass(frozen=True)
class CorsDecision:
    """Access-control outcome for one request."""

    enabled: bool
    allow_origin: Optional[str] = None
    allow_credentials: bool = False
    allowed_methods: List[str] = field(default_factory=list)
    allowed_headers: List[str] = field(default_factory=list)

    @property
    def allows_preflight(self) -> bool:
        return self.enabled

    def headers(self) -> Dict[str, str]:
        """Render the decision as response headers."""
        if not self.enabled:
            return {}

        headers = {
            "Access-Control-Allow-Methods": ", ".join(self.allowed_methods),
            "Access-Control-Allow-Headers": ", ".join(self.allowed_headers),
        }
        if self.allow_origin is not None:
            headers["Access-Control-Allow-Origin"] = self.allow_origin
        if self.allow_credentials:
            headers["Access-Control-Allow-Credentials"] = "true"
        return headers


DISABLED = CorsDecision(enabled=False)


def decide(origin: Optional[str], config: CorsConfig) -> CorsDecision:
    """
    Decide the CORS headers for a request.

    A wildcard entry allows every origin as ``*``. Otherwise the request
    Origin is echoed only when it appears verbatim in the allow-list;
    enforcing the resulting block is left to the browser.
    """
    if not config.enabled:
        return DISABLED

    if WILDCARD in config.origins:
        allow_origin: Optional[str] = WILDCARD
    elif origin and origin in config.origins:
        allow_origin = origin
    else:
        allow_origin = None
        if origin:
            logger.debug("Origin not in CORS allow-list", origin=origin)

    # Wildcard with credentials is rejected by browsers; callers own that choice.
    return CorsDecision(
        enabled=True,
        allow_origin=allow_origin,
        allow_credentials=config.credentials,
        allowed_methods=list(config.allowed_methods),
        allowed_headers=list(config.allowed_headers),
    )


class CorsPolicy:
    """CORS decision bound to one configuration."""

    def __init__(self, config: CorsConfig):
        self.config = config

    @property
    def enabled(self) -> bool:
        return self.config.enabled

    def decide(self, origin: Optional[str]) -> CorsDecision:
        return decide(origin, self.config)
