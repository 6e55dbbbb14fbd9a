"""Tests for the JSON-RPC layer - dispatch, handlers and error mapping."""

from __future__ import annotations

import io
import json
from pathlib import Path

import pytest

from folio.errors import NotFoundError, PersistenceError, get_error_code
from folio.rpc import RpcError, dispatch, handle_request, serve
from folio.rpc.types import (
    CODE_NAMES,
    DATABASE_ERROR,
    INVALID_PARAMS,
    INVALID_REQUEST,
    METHOD_NOT_FOUND,
    NOT_FOUND_ERROR,
    VALIDATION_ERROR,
    parse_request,
)


# =============================================================================
# Dispatch
# =============================================================================


class TestDispatch:
    """Test method lookup and request framing."""

    def test_unknown_method(self) -> None:
        with pytest.raises(RpcError) as exc_info:
            dispatch("pages/explode", {})
        assert exc_info.value.code == METHOD_NOT_FOUND

    def test_params_must_be_object(self) -> None:
        with pytest.raises(RpcError) as exc_info:
            dispatch("pages/list", ["x"])
        assert exc_info.value.code == INVALID_PARAMS

    def test_missing_param(self, initialized_db: Path) -> None:
        with pytest.raises(RpcError) as exc_info:
            dispatch("pages/get", {})
        assert exc_info.value.code == INVALID_PARAMS

    def test_notification_gets_no_response(self) -> None:
        assert handle_request({"jsonrpc": "2.0", "method": "pages/list"}) is None

    def test_method_must_be_string(self) -> None:
        resp = handle_request({"jsonrpc": "2.0", "id": 1, "method": 42})

        assert resp is not None
        assert resp["error"]["code"] == INVALID_REQUEST

    def test_result_envelope(self, initialized_db: Path) -> None:
        resp = handle_request({"jsonrpc": "2.0", "id": 7, "method": "pages/list", "params": {}})

        assert resp == {"jsonrpc": "2.0", "id": 7, "result": {"pages": []}}


# =============================================================================
# Page Handlers
# =============================================================================


class TestPageHandlers:
    """Test page methods against a temporary database."""

    def test_create_and_list(self, initialized_db: Path) -> None:
        created = dispatch("pages/create", {"title": "Ideas", "type": "project"})
        listed = dispatch("pages/list", {})

        assert created["page"]["title"] == "Ideas"
        assert created["page"]["type"] == "project"
        assert [p["id"] for p in listed["pages"]] == [created["page"]["id"]]

    def test_get_seeds_empty_page(self, test_page: str) -> None:
        from folio.storage import blocks_db

        result = dispatch("pages/get", {"page_id": test_page})

        assert result["page"]["id"] == test_page
        assert len(result["blocks"]) == 1
        assert result["blocks"][0]["type"] == "paragraph"
        # Seed is not stored until the client saves
        assert blocks_db.load_page_blocks(test_page) == []

    def test_get_missing_page(self, initialized_db: Path) -> None:
        with pytest.raises(RpcError) as exc_info:
            dispatch("pages/get", {"page_id": "page-missing"})

        assert exc_info.value.code == NOT_FOUND_ERROR
        assert exc_info.value.data["resource_id"] == "page-missing"

    def test_update(self, test_page: str) -> None:
        result = dispatch("pages/update", {"page_id": test_page, "title": "Renamed", "icon": "star"})

        assert result["page"]["title"] == "Renamed"
        assert result["page"]["icon"] == "star"

    def test_update_unknown_field(self, test_page: str) -> None:
        with pytest.raises(RpcError) as exc_info:
            dispatch("pages/update", {"page_id": test_page, "colour": "red"})
        assert exc_info.value.code == VALIDATION_ERROR

    def test_export(self, test_page: str) -> None:
        dispatch("pages/blocks/replace", {
            "page_id": test_page,
            "blocks": [{"id": "b1", "type": "heading_1", "content": "Hello", "index": 0}],
        })

        result = dispatch("pages/export", {"page_id": test_page})

        assert result == {"title": "Test Page", "markdown": "# Hello"}


# =============================================================================
# Block Handlers
# =============================================================================


class TestBlockHandlers:
    """Test saving blocks and finding backlinks."""

    def test_replace_accepts_camel_case(self, test_page: str) -> None:
        from folio.storage import blocks_db

        result = dispatch("pages/blocks/replace", {
            "page_id": test_page,
            "blocks": [
                {"id": "b1", "pageId": test_page, "type": "bullet_list", "content": "one", "index": 0},
                {"id": "b2", "parentBlockId": "b1", "type": "bullet_list", "content": "two", "index": 0},
            ],
        })

        assert result == {"ok": True, "count": 2}
        loaded = {b.id: b for b in blocks_db.load_page_blocks(test_page)}
        assert loaded["b2"].parent_block_id == "b1"
        assert loaded["b2"].page_id == test_page

    def test_replace_requires_ids(self, test_page: str) -> None:
        with pytest.raises(RpcError) as exc_info:
            dispatch("pages/blocks/replace", {"page_id": test_page, "blocks": [{"type": "paragraph"}]})
        assert exc_info.value.code == VALIDATION_ERROR

    def test_replace_unknown_page(self, initialized_db: Path) -> None:
        with pytest.raises(RpcError) as exc_info:
            dispatch("pages/blocks/replace", {"page_id": "page-missing", "blocks": []})
        assert exc_info.value.code == NOT_FOUND_ERROR

    def test_backlinks(self, test_page: str) -> None:
        other = dispatch("pages/create", {"title": "Other"})["page"]["id"]
        dispatch("pages/blocks/replace", {
            "page_id": other,
            "blocks": [{"id": "b1", "type": "paragraph", "content": f"see [[page:{test_page}|Test Page]]"}],
        })

        result = dispatch("pages/backlinks", {"page_id": test_page})

        assert len(result["backlinks"]) == 1
        link = result["backlinks"][0]
        assert link["page_id"] == other
        assert link["page_title"] == "Other"
        assert link["block_id"] == "b1"


# =============================================================================
# Error Codes and Framing
# =============================================================================


class TestRpcTypes:
    """Test error code derivation and request line decoding."""

    def test_codes_follow_error_hierarchy(self) -> None:
        assert NOT_FOUND_ERROR == get_error_code(NotFoundError("x"))
        assert DATABASE_ERROR == get_error_code(PersistenceError("x"))
        assert CODE_NAMES[NOT_FOUND_ERROR] == "not_found"
        assert len(CODE_NAMES) == len(set(CODE_NAMES.values()))

    def test_from_folio_error(self) -> None:
        error = RpcError.from_folio_error(
            NotFoundError("Page not found: p", resource_type="page", resource_id="p")
        )

        assert error.code == NOT_FOUND_ERROR
        assert error.name == "not_found"
        assert error.to_dict()["data"]["resource_type"] == "page"

    def test_unknown_code_name(self) -> None:
        assert RpcError(code=-1, message="odd").name == "unknown"

    def test_parse_request(self) -> None:
        assert parse_request('{"id": 1, "method": "pages/list"}\n') == {
            "id": 1,
            "method": "pages/list",
        }
        assert parse_request("   \n") is None
        assert parse_request("{oops") is None
        assert parse_request("[1, 2]") is None


class TestServe:
    """Test the line loop over in-memory streams."""

    def test_answers_requests_and_skips_the_rest(self, temp_data_dir: Path) -> None:
        requests = "\n".join([
            json.dumps({"jsonrpc": "2.0", "id": 1, "method": "pages/list"}),
            "{oops",
            "[1, 2]",
            "",
            json.dumps({"jsonrpc": "2.0", "method": "pages/list"}),
            json.dumps({"jsonrpc": "2.0", "id": 2, "method": "pages/get", "params": {"page_id": "nope"}}),
        ]) + "\n"
        out = io.StringIO()

        serve(io.StringIO(requests), out)

        responses = [json.loads(line) for line in out.getvalue().splitlines()]
        assert [r["id"] for r in responses] == [1, 2]
        assert responses[0]["result"] == {"pages": []}
        assert responses[1]["error"]["code"] == NOT_FOUND_ERROR
