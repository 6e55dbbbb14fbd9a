"""RPC types and line framing.

The error codes for folio's own failures are taken from the error hierarchy
in ``folio.errors``, so a handler error and its wire code cannot drift apart.
Requests and responses are single JSON objects, one per line.
"""

from __future__ import annotations

import json
import logging
import sys
from typing import Any, TextIO

from ..errors import (
    ConfigurationError,
    DatabaseError,
    ExternalCallError,
    FolioError,
    NotFoundError,
    ValidationError,
    error_code_for,
)

logger = logging.getLogger(__name__)

JSON = dict[str, Any]


# Standard JSON-RPC error codes
PARSE_ERROR = -32700
INVALID_REQUEST = -32600
METHOD_NOT_FOUND = -32601
INVALID_PARAMS = -32602
INTERNAL_ERROR = -32603

# Application codes, one per error family
VALIDATION_ERROR = error_code_for(ValidationError)
NOT_FOUND_ERROR = error_code_for(NotFoundError)
EXTERNAL_CALL_ERROR = error_code_for(ExternalCallError)
DATABASE_ERROR = error_code_for(DatabaseError)
CONFIGURATION_ERROR = error_code_for(ConfigurationError)

CODE_NAMES: dict[int, str] = {
    PARSE_ERROR: "parse_error",
    INVALID_REQUEST: "invalid_request",
    METHOD_NOT_FOUND: "method_not_found",
    INVALID_PARAMS: "invalid_params",
    INTERNAL_ERROR: "internal_error",
    VALIDATION_ERROR: "validation",
    NOT_FOUND_ERROR: "not_found",
    EXTERNAL_CALL_ERROR: "external_call",
    DATABASE_ERROR: "database",
    CONFIGURATION_ERROR: "configuration",
}


class RpcError(Exception):
    """A JSON-RPC error object raised out of dispatch."""

    def __init__(self, code: int, message: str, data: Any = None) -> None:
        super().__init__(message)
        self.code = code
        self.message = message
        self.data = data

    @classmethod
    def from_folio_error(cls, error: FolioError) -> RpcError:
        """Wrap a domain error; its ``to_dict()`` becomes the error data."""
        return cls(code=error_code_for(type(error)), message=error.message, data=error.to_dict())

    @property
    def name(self) -> str:
        return CODE_NAMES.get(self.code, "unknown")

    def to_dict(self) -> JSON:
        result: JSON = {"code": self.code, "message": self.message}
        if self.data is not None:
            result["data"] = self.data
        return result


def jsonrpc_error(request_id: str | int | None, error: RpcError) -> JSON:
    return {"jsonrpc": "2.0", "id": request_id, "error": error.to_dict()}


def jsonrpc_result(request_id: str | int | None, result: Any) -> JSON:
    return {"jsonrpc": "2.0", "id": request_id, "result": result}


# =============================================================================
# Line framing
# =============================================================================


def parse_request(line: str) -> JSON | None:
    """Decode one request line.

    Blank lines, malformed JSON and non-object payloads yield None; the
    server skips them without answering.
    """
    line = line.strip()
    if not line:
        return None
    try:
        req = json.loads(line)
    except json.JSONDecodeError:
        logger.warning("Ignoring malformed request line: %.80s", line)
        return None
    if not isinstance(req, dict):
        logger.warning("Ignoring non-object request: %.80s", line)
        return None
    return req


def readline(stream: TextIO | None = None) -> str | None:
    """Read one line (stdin by default), returning None on EOF."""
    line = (stream if stream is not None else sys.stdin).readline()
    if not line:
        return None
    return line


def write(response: JSON, stream: TextIO | None = None) -> None:
    """Write one response line (stdout by default)."""
    out = stream if stream is not None else sys.stdout
    try:
        out.write(json.dumps(response) + "\n")
        out.flush()
    except BrokenPipeError:
        # Client disconnected - exit cleanly
        sys.exit(0)
