"""
Tests for common module (error hierarchy, decorators, logging).
"""

import json
import pytest
import logging


class TestExceptions:
    """Tests for exception hierarchy."""

    def test_registry_error_basic(self):
        """Test basic RegistryError."""
        from common.exceptions import RegistryError

        error = RegistryError("Something failed")
        assert str(error) == "[RegistryError] Something failed"
        assert error.recoverable is True

    def test_registry_error_with_details(self):
        """Test RegistryError with details."""
        from common.exceptions import RegistryError

        error = RegistryError(
            "Operation failed",
            code="OP_FAILED",
            details={"field": "value"},
            recoverable=False,
        )

        assert error.code == "OP_FAILED"
        assert error.details == {"field": "value"}
        assert error.recoverable is False
        assert "details:" in str(error)

    def test_registry_error_to_dict(self):
        """Test JSON serialization."""
        from common.exceptions import RegistryError

        error = RegistryError("Test", code="TEST", details={"key": 1})
        d = error.to_dict()

        assert d["error"] == "TEST"
        assert d["message"] == "Test"
        assert d["details"]["key"] == 1

    def test_duplicate_app_error(self):
        """Test DuplicateAppError specialization."""
        from common.exceptions import DuplicateAppError, RegistryError

        error = DuplicateAppError("https://a.io", existing_id=4)
        assert isinstance(error, RegistryError)
        assert error.code == "DUPLICATE_APP"
        assert error.details["existing_id"] == 4
        assert error.message == "This app is already in the list"

    def test_storage_error_not_recoverable(self):
        """Test StorageError keeps its cause and is fatal."""
        from common.exceptions import StorageError

        cause = OSError("disk full")
        error = StorageError("/data/1/custom_apps.json", "write", cause=cause)
        assert error.recoverable is False
        assert error.cause is cause
        assert "caused by: disk full" in str(error)

    def test_error_codes_are_distinct(self):
        """Test field-level errors can be told apart by code."""
        from common.exceptions import DuplicateAppError, InvalidUrlError, ManifestError

        codes = {
            InvalidUrlError("x").code,
            ManifestError("https://a.io", "no name").code,
            DuplicateAppError("https://a.io").code,
        }
        assert codes == {"INVALID_URL", "MANIFEST_UNSUPPORTED", "DUPLICATE_APP"}

    def test_validation_errors_name_the_url_field(self):
        """Test URL field errors say so in their dict form."""
        from common.exceptions import InvalidUrlError, StorageError, ValidationError

        error = InvalidUrlError("x")
        assert isinstance(error, ValidationError)
        assert error.to_dict()["field"] == "url"
        assert "field" not in StorageError("/tmp/a.json", "read").to_dict()


class TestDecorators:
    """Tests for error handling decorators."""

    def test_handle_errors_returns_default(self):
        """Test @handle_errors returns default on exception."""
        from common.decorators import handle_errors

        @handle_errors(ValueError, default="fallback")
        def failing_func():
            raise ValueError("test error")

        assert failing_func() == "fallback"

    def test_handle_errors_passes_through(self):
        """Test @handle_errors passes through on success."""
        from common.decorators import handle_errors

        @handle_errors(ValueError, default="fallback")
        def working_func():
            return "success"

        assert working_func() == "success"

    def test_handle_errors_reraise(self):
        """Test @handle_errors can reraise."""
        from common.decorators import handle_errors

        @handle_errors(ValueError, reraise=True)
        def failing_func():
            raise ValueError("test")

        with pytest.raises(ValueError):
            failing_func()

    def test_handle_errors_ignores_other_types(self):
        """Test unlisted exceptions propagate."""
        from common.decorators import handle_errors

        @handle_errors(KeyError)
        def failing_func():
            raise TypeError("not handled")

        with pytest.raises(TypeError):
            failing_func()

    def test_timed_decorator(self, caplog):
        """Test @timed logs execution time."""
        from common.decorators import timed

        @timed
        def quick_func():
            return "done"

        with caplog.at_level(logging.DEBUG):
            result = quick_func()

        assert result == "done"
        assert "quick_func completed" in caplog.text

    def test_handle_errors_callable_default(self):
        """Test callable defaults give a fresh value per failure."""
        from common.decorators import handle_errors

        @handle_errors(KeyError, default=list, log_level=logging.WARNING)
        def lookup():
            raise KeyError("apps")

        first = lookup()
        first.append(1)
        assert lookup() == []

    async def test_timed_async(self, caplog):
        """Test @timed awaits coroutines and warns when slow."""
        from common.decorators import timed

        @timed(slow=0.0)
        async def fetch():
            return "manifest"

        with caplog.at_level(logging.DEBUG):
            assert await fetch() == "manifest"

        assert any(
            r.levelno == logging.WARNING and "fetch completed" in r.getMessage()
            for r in caplog.records
        )


class TestLogging:
    """Tests for logging configuration."""

    def test_setup_logging_creates_handlers(self, tmp_path):
        """Test setup_logging configures console and file handlers."""
        from common.logging_config import setup_logging

        root = logging.getLogger()
        saved_handlers, saved_level = root.handlers[:], root.level
        try:
            setup_logging(level=logging.DEBUG, log_dir=tmp_path)
            assert len(root.handlers) == 2
            assert (tmp_path / "miniapps.log").exists()
        finally:
            for handler in root.handlers:
                handler.close()
            root.handlers[:] = saved_handlers
            root.setLevel(saved_level)

    def test_json_formatter_includes_context(self):
        """Test LogContext fields end up in JSON output."""
        from common.logging_config import JSONFormatter, LogContext

        with LogContext(chain_id="1"):
            record = logging.getLogger("test").makeRecord(
                "test", logging.INFO, __file__, 1, "hello", (), None,
            )

        data = json.loads(JSONFormatter().format(record))
        assert data["message"] == "hello"
        assert data["context"] == {"chain_id": "1"}

    def test_nested_contexts_merge(self):
        """Test inner contexts add to outer ones and are undone on exit."""
        from common.logging_config import LogContext

        with LogContext(chain_id="1"):
            with LogContext(command="remove"):
                assert LogContext.current() == {"chain_id": "1", "command": "remove"}
            assert LogContext.current() == {"chain_id": "1"}
        assert LogContext.current() == {}

    def test_console_formatter_appends_context(self):
        """Test console lines end with the context fields."""
        from common.logging_config import ConsoleFormatter, LogContext

        with LogContext(chain_id="137"):
            record = logging.getLogger("miniapps.registry").makeRecord(
                "miniapps.registry", logging.WARNING, __file__, 1, "revoke failed", (), None,
            )

        line = ConsoleFormatter(color=False).format(record)
        assert line == "WARNING miniapps.registry: revoke failed [chain_id=137]"
