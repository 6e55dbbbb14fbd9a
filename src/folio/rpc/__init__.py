"""JSON-RPC 2.0 interface to the page and block store."""

from __future__ import annotations

from .types import (
    JSON,
    RpcError,
    PARSE_ERROR,
    INVALID_REQUEST,
    METHOD_NOT_FOUND,
    INVALID_PARAMS,
    INTERNAL_ERROR,
    VALIDATION_ERROR,
    NOT_FOUND_ERROR,
    EXTERNAL_CALL_ERROR,
    DATABASE_ERROR,
    CONFIGURATION_ERROR,
    CODE_NAMES,
    jsonrpc_error,
    jsonrpc_result,
    parse_request,
)
from .server import dispatch, handle_request, serve

__all__ = [
    # Types
    "JSON",
    "RpcError",
    # Error codes
    "PARSE_ERROR",
    "INVALID_REQUEST",
    "METHOD_NOT_FOUND",
    "INVALID_PARAMS",
    "INTERNAL_ERROR",
    "VALIDATION_ERROR",
    "NOT_FOUND_ERROR",
    "EXTERNAL_CALL_ERROR",
    "DATABASE_ERROR",
    "CONFIGURATION_ERROR",
    "CODE_NAMES",
    # Helpers
    "jsonrpc_error",
    "jsonrpc_result",
    "parse_request",
    # Server
    "dispatch",
    "handle_request",
    "serve",
]
