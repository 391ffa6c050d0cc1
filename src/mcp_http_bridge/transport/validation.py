"""
Inbound request validation.

Runs ordered, short-circuiting checks on an IncomingRequest. Every check
that only needs the request line and headers runs before the body is read.
Failures are returned as values, not raised, so the bridge can map each
kind straight to a response.
"""

import json
from dataclasses import dataclass
from enum import Enum
from typing import Optional

import structlog

from ..config.settings import TransportConfig
from .messages import JSON_CONTENT_TYPE, IncomingRequest, ProtocolMessage

logger = structlog.get_logger(__name__)

ALLOWED_METHODS = ("POST", "OPTIONS")


class BodyTooLargeError(Exception):
    """Raised by a body reader when the payload exceeds its size limit."""


class RejectionKind(str, Enum):
    """Classified request-shape failures."""

    NOT_FOUND = "not_found"
    METHOD_NOT_ALLOWED = "method_not_allowed"
    UNSUPPORTED_MEDIA_TYPE = "unsupported_media_type"
    PAYLOAD_TOO_LARGE = "payload_too_large"
    MALFORMED_BODY = "malformed_body"


@dataclass(frozen=True)
class Rejection:
    """A request refused before any handler saw it."""

    kind: RejectionKind
    detail: str = ""


@dataclass(frozen=True)
class ValidationResult:
    """Either a parsed message or a rejection, never both."""

    message: Optional[ProtocolMessage] = None
    rejection: Optional[Rejection] = None

    @property
    def ok(self) -> bool:
        return self.rejection is None

    @classmethod
    def accept(cls, message: ProtocolMessage) -> "ValidationResult":
        return cls(message=message)

    @classmethod
    def reject(cls, kind: RejectionKind, detail: str = "") -> "ValidationResult":
        return cls(rejection=Rejection(kind=kind, detail=detail))


class RequestValidator:
    """
    Validation pipeline for message submissions.

    Checks, in order: path prefix, method, content type, declared length,
    then reads and parses the body.
    """

    def __init__(self, config: TransportConfig):
        self.config = config

    def matches_path(self, path: str) -> bool:
        """Whether the path falls under the configured prefix."""
        return path.startswith(self.config.path_prefix)

    async def validate(self, request: IncomingRequest) -> ValidationResult:
        """
        Validate a request and parse its body.

        Args:
            request: Incoming request

        Returns:
            ValidationResult holding the message or the first rejection hit
        """
        rejection = self.check_headers(request)
        if rejection is not None:
            return ValidationResult(rejection=rejection)
        return await self.read_message(request)

    def check_headers(self, request: IncomingRequest) -> Optional[Rejection]:
        """Run every check that does not need the body."""
        if not self.matches_path(request.path):
            return Rejection(RejectionKind.NOT_FOUND, request.path)

        if request.method != "POST":
            return Rejection(RejectionKind.METHOD_NOT_ALLOWED, request.method)

        if not is_json_content_type(request.content_type):
            return Rejection(RejectionKind.UNSUPPORTED_MEDIA_TYPE, request.content_type or "")

        # Trusts the client-declared header; a missing header is not a rejection.
        declared = request.declared_length
        if declared is not None:
            try:
                length = int(declared.strip())
            except ValueError:
                return Rejection(RejectionKind.MALFORMED_BODY, "Invalid Content-Length")
            if length < 0:
                return Rejection(RejectionKind.MALFORMED_BODY, "Invalid Content-Length")
            if length > self.config.max_body_size:
                logger.info(
                    "Rejecting oversized request",
                    declared_length=length,
                    max_body_size=self.config.max_body_size,
                )
                return Rejection(RejectionKind.PAYLOAD_TOO_LARGE, str(length))

        return None

    async def read_message(self, request: IncomingRequest) -> ValidationResult:
        """Read the body and parse it as JSON."""
        try:
            body = await request.read_body()
        except BodyTooLargeError as e:
            return ValidationResult.reject(RejectionKind.PAYLOAD_TOO_LARGE, str(e))

        try:
            payload = json.loads(body.decode("utf-8"))
        except (UnicodeDecodeError, json.JSONDecodeError, RecursionError) as e:
            logger.debug("Invalid JSON body", error=str(e), body_size=len(body))
            return ValidationResult.reject(RejectionKind.MALFORMED_BODY, "Invalid JSON")

        return ValidationResult.accept(ProtocolMessage(payload))


def is_json_content_type(content_type: Optional[str]) -> bool:
    """Match ``application/json`` ignoring parameters and case."""
    if not content_type:
        return False
    media_type = content_type.split(";", 1)[0].strip().lower()
    return media_type == JSON_CONTENT_TYPE
