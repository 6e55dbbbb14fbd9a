"""Tests for errors.py - error hierarchy and RPC code mapping."""

from __future__ import annotations

from folio.errors import (
    ConfigurationError,
    DatabaseError,
    ExternalCallError,
    FolioError,
    NotFoundError,
    PersistenceError,
    ValidationError,
    get_error_code,
)


class TestErrorHierarchy:
    """Test error attributes and serialization."""

    def test_validation_error_context(self) -> None:
        error = ValidationError("Unknown block type", field="type", value="banner")
        data = error.to_dict()

        assert data["type"] == "validation"
        assert data["message"] == "Unknown block type"
        assert data["field"] == "type"
        assert data["value"] == "banner"
        assert data["recoverable"] is False

    def test_long_values_truncated(self) -> None:
        error = ValidationError("Too long", value="x" * 500)
        assert len(error.to_dict()["value"]) == 100

    def test_not_found_omits_missing_context(self) -> None:
        data = NotFoundError("Page not found").to_dict()

        assert "resource_type" not in data
        assert "resource_id" not in data

    def test_persistence_error_is_recoverable(self) -> None:
        error = PersistenceError("disk full", page_id="page-1")

        assert isinstance(error, DatabaseError)
        assert error.recoverable is True
        assert error.to_dict()["page_id"] == "page-1"
        assert error.to_dict()["operation"] == "replace_page_blocks"

    def test_all_are_folio_errors(self) -> None:
        for error in (
            ValidationError("a"),
            NotFoundError("b"),
            DatabaseError("c"),
            ExternalCallError("d"),
            ConfigurationError("e"),
        ):
            assert isinstance(error, FolioError)


class TestGetErrorCode:
    """Test JSON-RPC code mapping."""

    def test_codes(self) -> None:
        assert get_error_code(ValidationError("x")) == -32000
        assert get_error_code(NotFoundError("x")) == -32003
        assert get_error_code(ExternalCallError("x")) == -32005
        assert get_error_code(DatabaseError("x")) == -32006
        assert get_error_code(PersistenceError("x")) == -32006
        assert get_error_code(ConfigurationError("x")) == -32007

    def test_base_error_is_internal(self) -> None:
        assert get_error_code(FolioError("x")) == -32603
