"""Tests for error types and codes."""

import pytest

from sitterkit.core.errors import (
    ConfigError,
    ErrorCode,
    GrammarLoadError,
    InstallError,
    InternalError,
    PackageError,
    RegistryError,
    SitterkitError,
)


class TestErrorCode:
    """Error code value tests."""

    @pytest.mark.parametrize(
        ("code", "expected_range"),
        [
            (ErrorCode.CONFIG_PARSE_ERROR, 2000),
            (ErrorCode.MANIFEST_BAD_STATUS, 3000),
            (ErrorCode.DOWNLOAD_TIMEOUT, 4000),
            (ErrorCode.PACKAGE_CONFIG_MISSING, 5000),
            (ErrorCode.GRAMMAR_LOADER_FAILED, 6000),
            (ErrorCode.INTERNAL_ERROR, 9000),
        ],
    )
    def test_given_error_code_when_checked_then_in_correct_range(
        self, code: ErrorCode, expected_range: int
    ) -> None:
        """Error codes fall within their designated numeric range."""
        assert expected_range <= code.value < expected_range + 1000


class TestSitterkitError:
    """Base error behavior tests."""

    def test_given_error_when_to_dict_then_serializes_all_fields(self) -> None:
        """Error serializes to dict with all required fields."""
        # Given
        error = SitterkitError(
            code=ErrorCode.DOWNLOAD_EMPTY,
            message="Test message",
            retryable=True,
            details={"key": "value"},
        )

        # When
        result = error.to_dict()

        # Then
        assert result == {
            "code": 4003,
            "error": "DOWNLOAD_EMPTY",
            "message": "Test message",
            "retryable": True,
            "details": {"key": "value"},
        }

    def test_given_error_when_str_then_human_readable(self) -> None:
        """Error string representation is human readable."""
        error = InternalError.unexpected("Something broke")

        assert str(error) == "[9001] INTERNAL_ERROR: Internal error: Something broke"

    def test_given_subclass_when_raised_then_caught_as_base(self) -> None:
        """Every domain error is catchable as SitterkitError."""
        with pytest.raises(SitterkitError):
            raise PackageError.config_missing("json", "/tmp/json")


class TestFactories:
    """Factory method tests for each error family."""

    @pytest.mark.parametrize(
        ("factory", "kwargs", "expected_code"),
        [
            (ConfigError.parse_error, {"path": "/c", "reason": "bad"}, ErrorCode.CONFIG_PARSE_ERROR),
            (
                ConfigError.invalid_value,
                {"field": "registry.base_url", "value": 1, "reason": "x"},
                ErrorCode.CONFIG_INVALID_VALUE,
            ),
            (RegistryError.bad_status, {"url": "u", "status": 404}, ErrorCode.MANIFEST_BAD_STATUS),
            (RegistryError.bad_body, {"url": "u", "reason": "r"}, ErrorCode.MANIFEST_BAD_BODY),
            (
                RegistryError.prefix_mismatch,
                {"prefix": "/pkg/", "path": "/x"},
                ErrorCode.MANIFEST_PREFIX_MISMATCH,
            ),
            (
                InstallError.malformed_pattern,
                {"pattern": "", "reason": "empty"},
                ErrorCode.PATTERN_MALFORMED,
            ),
            (InstallError.download_timeout, {"url": "u", "timeout": 30}, ErrorCode.DOWNLOAD_TIMEOUT),
            (InstallError.download_empty, {"url": "u"}, ErrorCode.DOWNLOAD_EMPTY),
            (InstallError.download_failed, {"url": "u", "reason": "r"}, ErrorCode.DOWNLOAD_FAILED),
            (PackageError.config_missing, {"name": "n", "path": "p"}, ErrorCode.PACKAGE_CONFIG_MISSING),
            (PackageError.store_io, {"path": "p", "reason": "r"}, ErrorCode.STORE_IO_ERROR),
            (GrammarLoadError.no_module, {"name": "n"}, ErrorCode.GRAMMAR_NO_MODULE),
            (GrammarLoadError.loader_failed, {"name": "n", "reason": "r"}, ErrorCode.GRAMMAR_LOADER_FAILED),
            (GrammarLoadError.unavailable, {"name": "n"}, ErrorCode.GRAMMAR_UNAVAILABLE),
        ],
    )
    def test_given_factory_when_called_then_correct_code(
        self, factory: object, kwargs: dict[str, object], expected_code: ErrorCode
    ) -> None:
        """Factory methods produce errors with correct error codes."""
        error = factory(**kwargs)  # type: ignore[operator]

        assert error.code == expected_code

    def test_timeout_is_retryable(self) -> None:
        assert InstallError.download_timeout("u", 30).retryable is True

    def test_server_errors_are_retryable_client_errors_are_not(self) -> None:
        assert RegistryError.bad_status("u", 503).retryable is True
        assert RegistryError.bad_status("u", 404).retryable is False

    def test_engine_not_ready_has_no_details(self) -> None:
        error = GrammarLoadError.engine_not_ready()
        assert error.code == ErrorCode.ENGINE_NOT_READY
        assert error.details == {}
