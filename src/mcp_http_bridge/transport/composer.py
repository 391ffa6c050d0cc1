"""
Response composition.

Maps exchange results, rejections and preflight outcomes onto
OutgoingResponse values, attaching the request's CORS headers.
"""

import json
from typing import Any, Dict, Optional, Union

import structlog

from ..protocol.schemas import MCPError, MCPInternalError
from .cors import CorsDecision
from .exchange import ExchangeResult
from .messages import JSON_CONTENT_TYPE, TEXT_CONTENT_TYPE, OutgoingResponse
from .validation import ALLOWED_METHODS, Rejection, RejectionKind

logger = structlog.get_logger(__name__)

_REJECTIONS = {
    RejectionKind.NOT_FOUND: (404, "Not Found"),
    RejectionKind.METHOD_NOT_ALLOWED: (405, "Method Not Allowed"),
    RejectionKind.UNSUPPORTED_MEDIA_TYPE: (
        400,
        "Bad Request: Content-Type must be application/json",
    ),
    RejectionKind.PAYLOAD_TOO_LARGE: (413, "Payload Too Large"),
    RejectionKind.MALFORMED_BODY: (400, "Bad Request: Invalid JSON"),
}


class ResponseComposer:
    """Builds the single outbound response for a request."""

    def compose(
        self, outcome: Union[ExchangeResult, Rejection], cors: CorsDecision
    ) -> OutgoingResponse:
        """
        Compose a response for an exchange result or a rejection.

        Args:
            outcome: Result of the exchange, or the validation rejection
            cors: CORS decision for the originating request

        Returns:
            Response ready to send
        """
        if isinstance(outcome, Rejection):
            return self.rejection(outcome, cors)
        if outcome.ok:
            return self.success(outcome.value, cors)
        return self.error(outcome.error, cors)

    def success(self, value: Any, cors: CorsDecision) -> OutgoingResponse:
        try:
            body = _dump(value)
        except (TypeError, ValueError) as e:
            logger.error("Failed to serialize exchange result", error=str(e))
            return self.error(
                MCPInternalError(data=f"Response serialization failed: {e}"), cors
            )
        return OutgoingResponse(
            status=200,
            headers=self._headers(JSON_CONTENT_TYPE, cors),
            body=body,
        )

    def error(self, error: Optional[MCPError], cors: CorsDecision) -> OutgoingResponse:
        error = error or MCPInternalError()
        envelope = {"error": error.to_dict()}
        try:
            body = _dump(envelope)
        except (TypeError, ValueError):
            # Error data that cannot be serialized is replaced by its string form.
            envelope["error"]["data"] = str(error.data)
            body = _dump(envelope)
        return OutgoingResponse(
            status=500,
            headers=self._headers(JSON_CONTENT_TYPE, cors),
            body=body,
        )

    def rejection(self, rejection: Rejection, cors: CorsDecision) -> OutgoingResponse:
        status, text = _REJECTIONS[rejection.kind]
        if rejection.kind == RejectionKind.MALFORMED_BODY and rejection.detail:
            text = f"Bad Request: {rejection.detail}"

        headers = self._headers(TEXT_CONTENT_TYPE, cors)
        if rejection.kind == RejectionKind.METHOD_NOT_ALLOWED:
            headers["Allow"] = ", ".join(ALLOWED_METHODS)
        return OutgoingResponse(status=status, headers=headers, body=text.encode("utf-8"))

    def preflight(self, cors: CorsDecision) -> OutgoingResponse:
        if not cors.allows_preflight:
            return OutgoingResponse(
                status=403,
                headers={"Content-Type": TEXT_CONTENT_TYPE},
                body=b"CORS disabled",
            )
        return OutgoingResponse(status=204, headers=cors.headers())

    def _headers(self, content_type: str, cors: CorsDecision) -> Dict[str, str]:
        headers = {"Content-Type": content_type}
        headers.update(cors.headers())
        return headers


def _dump(value: Any) -> bytes:
    # NaN and Infinity are not valid JSON.
    return json.dumps(value, separators=(",", ":"), allow_nan=False).encode("utf-8")
