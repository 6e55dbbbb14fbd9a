"""Line-delimited JSON-RPC 2.0 server over stdio."""

from __future__ import annotations

import logging
from typing import Any, TextIO

from ..storage import init_db
from . import handlers
from .types import (
    INVALID_PARAMS,
    INVALID_REQUEST,
    JSON,
    METHOD_NOT_FOUND,
    RpcError,
    jsonrpc_error,
    jsonrpc_result,
    parse_request,
    readline,
    write,
)

logger = logging.getLogger(__name__)


def dispatch(method: str, params: Any = None) -> Any:
    """Call the handler registered for ``method``.

    Raises:
        RpcError: Unknown method, bad params, or a handler failure.
    """
    handler = handlers.HANDLERS.get(method)
    if handler is None:
        raise RpcError(code=METHOD_NOT_FOUND, message=f"Method not found: {method}")
    if params is None:
        params = {}
    if not isinstance(params, dict):
        raise RpcError(code=INVALID_PARAMS, message="params must be an object")
    return handler(**params)


def handle_request(req: dict[str, Any]) -> JSON | None:
    """Handle one decoded request; notifications (no id) get no response."""
    method = req.get("method")
    req_id = req.get("id")

    if req_id is None:
        return None

    logger.debug("RPC request method=%s req_id=%s", method, req_id)
    try:
        if not isinstance(method, str):
            raise RpcError(code=INVALID_REQUEST, message="method must be a string")
        return jsonrpc_result(req_id, dispatch(method, req.get("params")))
    except RpcError as e:
        logger.info("RPC %s failed with %s: %s", method, e.name, e.message)
        return jsonrpc_error(req_id, e)


def serve(stdin: TextIO | None = None, stdout: TextIO | None = None) -> None:
    """Serve requests from stdin until EOF.

    Args:
        stdin: Request stream, ``sys.stdin`` when None.
        stdout: Response stream, ``sys.stdout`` when None.
    """
    init_db()

    while True:
        line = readline(stdin)
        if line is None:
            return

        req = parse_request(line)
        if req is None:
            continue

        resp = handle_request(req)
        if resp is not None:
            write(resp, stdout)
