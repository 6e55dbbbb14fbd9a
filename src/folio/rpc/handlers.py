"""Page and block RPC handlers.

Each handler takes keyword params and returns a JSON-serializable dict. The
``rpc_handler`` decorator registers it under its method name and converts
domain errors to RpcError.
"""

from __future__ import annotations

import logging
from functools import wraps
from typing import Any, Callable

from ..blocks.markdown import render_markdown
from ..blocks.models import Block
from ..blocks.tree import ensure_seeded
from ..errors import FolioError, NotFoundError, ValidationError
from ..storage import blocks_db, pages_db
from .types import INTERNAL_ERROR, INVALID_PARAMS, RpcError

logger = logging.getLogger(__name__)

HANDLERS: dict[str, Callable[..., Any]] = {}


def rpc_handler(method_name: str) -> Callable:
    """Decorator that registers a handler and converts domain errors to RpcError.

    1. RpcError propagates unchanged
    2. FolioError becomes a structured RpcError (RpcError.from_folio_error)
    3. ValueError / TypeError become parameter errors (-32602)
    4. Anything else is logged and becomes an internal error (-32603)

    Usage:
        @rpc_handler("pages/get")
        def handle_pages_get(*, page_id: str) -> dict:
            ...
    """

    def decorator(func: Callable) -> Callable:
        @wraps(func)
        def wrapper(**kwargs: Any) -> Any:
            try:
                return func(**kwargs)
            except RpcError:
                raise
            except FolioError as e:
                raise RpcError.from_folio_error(e) from e
            except ValueError as e:
                raise RpcError(code=INVALID_PARAMS, message=str(e)) from e
            except TypeError as e:
                # Missing or unexpected keyword params
                raise RpcError(code=INVALID_PARAMS, message=f"Invalid parameter: {e}") from e
            except Exception as e:
                logger.error("Internal error in RPC handler %s: %s", method_name, e, exc_info=True)
                raise RpcError(
                    code=INTERNAL_ERROR,
                    message=f"Internal error in {method_name}",
                    data={"error_type": type(e).__name__},
                ) from e

        HANDLERS[method_name] = wrapper
        return wrapper

    return decorator


def _require_page(page_id: str):
    page = pages_db.get_page(page_id)
    if page is None:
        raise NotFoundError(f"Page not found: {page_id}", resource_type="page", resource_id=page_id)
    return page


# =============================================================================
# Pages
# =============================================================================


@rpc_handler("pages/list")
def handle_pages_list(*, include_archived: bool = False) -> dict[str, Any]:
    pages = pages_db.list_pages(include_archived=include_archived)
    return {"pages": [p.to_dict() for p in pages]}


@rpc_handler("pages/create")
def handle_pages_create(
    *,
    title: str = "Untitled",
    type: str = "note",
    parent_id: str | None = None,
    icon: str | None = None,
) -> dict[str, Any]:
    page = pages_db.create_page(title, type=type, parent_id=parent_id, icon=icon)
    return {"page": page.to_dict()}


@rpc_handler("pages/get")
def handle_pages_get(*, page_id: str) -> dict[str, Any]:
    """Get a page with its blocks.

    A page without blocks is returned with one seed paragraph, which is only
    stored once the client saves.
    """
    page = _require_page(page_id)
    blocks = ensure_seeded(page_id, blocks_db.load_page_blocks(page_id))
    return {
        "page": page.to_dict(),
        "blocks": [b.to_dict() for b in blocks],
    }


@rpc_handler("pages/update")
def handle_pages_update(*, page_id: str, **changes: Any) -> dict[str, Any]:
    """Update title, parent, icon or archived state.

    Only keys present in the request are changed, so ``parent_id: null``
    moves the page to the top level.
    """
    allowed = {"title", "parent_id", "icon", "is_archived"}
    unknown = set(changes) - allowed
    if unknown:
        raise ValidationError(
            f"Unknown page fields: {', '.join(sorted(unknown))}",
            field="params",
            value=sorted(unknown),
        )
    page = pages_db.update_page(page_id, **changes)
    return {"page": page.to_dict()}


@rpc_handler("pages/backlinks")
def handle_pages_backlinks(*, page_id: str) -> dict[str, Any]:
    backlinks = blocks_db.find_backlinks(page_id)
    return {"backlinks": [b.to_dict() for b in backlinks]}


@rpc_handler("pages/export")
def handle_pages_export(*, page_id: str) -> dict[str, Any]:
    page = _require_page(page_id)
    blocks = blocks_db.load_page_blocks(page_id)
    return {"title": page.title, "markdown": render_markdown(blocks)}


# =============================================================================
# Blocks
# =============================================================================


@rpc_handler("pages/blocks/replace")
def handle_pages_blocks_replace(*, page_id: str, blocks: list[dict[str, Any]]) -> dict[str, Any]:
    """Replace every block of a page (the editor's save call).

    Blocks may use snake_case or camelCase keys; a missing page id defaults
    to ``page_id``.
    """
    _require_page(page_id)
    if not isinstance(blocks, list):
        raise ValidationError("blocks must be a list", field="blocks", value=type(blocks).__name__)

    parsed: list[Block] = []
    for i, data in enumerate(blocks):
        if not isinstance(data, dict) or "id" not in data:
            raise ValidationError(f"Block {i} has no id", field="blocks", value=data)
        if "page_id" not in data and "pageId" not in data:
            data = {**data, "page_id": page_id}
        parsed.append(Block.from_dict(data))

    blocks_db.replace_page_blocks(page_id, parsed)
    return {"ok": True, "count": len(parsed)}
