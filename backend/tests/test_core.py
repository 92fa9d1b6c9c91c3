"""Tests for core modules."""

from unittest.mock import MagicMock, patch

import pytest
from pydantic import ValidationError as PydanticValidationError

from deal_attachments.core.config import Settings, settings
from deal_attachments.core.exceptions import (
    AppException,
    AttachmentNotFoundError,
    AttachmentTooLargeError,
    BlobMissingError,
    DealNotFoundError,
    ExternalServiceError,
    InvalidDealError,
    NotFoundError,
    ValidationError,
    VersionMismatchError,
)


class TestSettings:
    """Tests for settings configuration."""

    def test_project_name_is_set(self):
        """Test project name is configured."""
        assert settings.PROJECT_NAME == "deal_attachments"

    def test_api_v1_str_is_set(self):
        """Test API version string is set."""
        assert settings.API_V1_STR == "/api/v1"

    def test_cors_origins_is_list(self):
        """Test CORS origins is a list."""
        assert isinstance(settings.CORS_ORIGINS, list)

    def test_max_attachment_size_bytes(self):
        """Test the size limit is derived from megabytes."""
        configured = Settings(MAX_ATTACHMENT_SIZE_MB=5, _env_file=None)  # type: ignore[call-arg]
        assert configured.MAX_ATTACHMENT_SIZE_BYTES == 5 * 1024 * 1024

    def test_max_attachment_size_minimum_validation(self):
        """Test MAX_ATTACHMENT_SIZE_MB rejects values below 1."""
        with pytest.raises(PydanticValidationError) as exc_info:
            Settings(MAX_ATTACHMENT_SIZE_MB=0, _env_file=None)  # type: ignore[call-arg]

        assert "MAX_ATTACHMENT_SIZE_MB must be at least 1" in str(exc_info.value)

    def test_deal_api_base_url_is_sanitized(self):
        """Test quotes, line endings and trailing slashes are removed."""
        configured = Settings(
            DEAL_API_BASE_URL='"https://deals.example.com/"\r\n',
            _env_file=None,  # type: ignore[call-arg]
        )
        assert configured.DEAL_API_BASE_URL == "https://deals.example.com"

    def test_deal_lookup_path_requires_placeholder(self):
        """Test DEAL_API_LOOKUP_PATH must contain {deal_id}."""
        with pytest.raises(PydanticValidationError):
            Settings(DEAL_API_LOOKUP_PATH="/api/deals", _env_file=None)  # type: ignore[call-arg]

        configured = Settings(
            DEAL_API_LOOKUP_PATH="api/pipeline/deal-pipeline/{deal_id}",
            _env_file=None,  # type: ignore[call-arg]
        )
        assert configured.DEAL_API_LOOKUP_PATH == "/api/pipeline/deal-pipeline/{deal_id}"

    def test_wildcard_cors_rejected_in_production(self):
        """Test '*' origins are refused when ENVIRONMENT is production."""
        with pytest.raises(PydanticValidationError):
            Settings(
                ENVIRONMENT="production",
                CORS_ORIGINS=["*"],
                _env_file=None,  # type: ignore[call-arg]
            )

    def test_database_url_escapes_credentials(self):
        """Test special characters in the password are URL-encoded."""
        configured = Settings(
            POSTGRES_PASSWORD="p@ss:word",
            _env_file=None,  # type: ignore[call-arg]
        )
        assert "p%40ss%3Aword" in configured.DATABASE_URL
        assert configured.DATABASE_URL.startswith("postgresql+asyncpg://")
        assert configured.DATABASE_URL_SYNC.startswith("postgresql://")


class TestExceptions:
    """Tests for custom exceptions."""

    def test_app_exception(self):
        """Test AppException initialization."""
        error = AppException(message="Test error", code="TEST_ERROR")
        assert error.message == "Test error"
        assert error.code == "TEST_ERROR"
        assert str(error) == "Test error"
        assert error.details == {}

    def test_not_found_error(self):
        """Test NotFoundError."""
        error = NotFoundError(message="Item not found")
        assert error.status_code == 404
        assert error.code == "NOT_FOUND"

    def test_validation_error(self):
        """Test ValidationError."""
        error = ValidationError(message="Invalid input")
        assert error.status_code == 422
        assert error.code == "VALIDATION_ERROR"

    @pytest.mark.parametrize(
        ("exc_class", "status_code", "code"),
        [
            (InvalidDealError, 400, "INVALID_DEAL"),
            (VersionMismatchError, 400, "VERSION_MISMATCH"),
            (AttachmentNotFoundError, 404, "ATTACHMENT_NOT_FOUND"),
            (BlobMissingError, 404, "BLOB_MISSING"),
            (DealNotFoundError, 404, "DEAL_NOT_FOUND"),
            (AttachmentTooLargeError, 413, "ATTACHMENT_TOO_LARGE"),
            (ExternalServiceError, 503, "EXTERNAL_SERVICE_ERROR"),
        ],
    )
    def test_attachment_errors(self, exc_class, status_code, code):
        """Test attachment errors carry their status and code."""
        error = exc_class(details={"attachment_id": "abc"})
        assert error.status_code == status_code
        assert error.code == code
        assert error.details == {"attachment_id": "abc"}

    def test_missing_blob_is_a_not_found(self):
        """Test both download failures are caught as NotFoundError."""
        assert issubclass(BlobMissingError, NotFoundError)
        assert issubclass(AttachmentNotFoundError, NotFoundError)


class TestLogfireSetup:
    """Tests for Logfire setup."""

    @patch("deal_attachments.core.logfire_setup.logfire")
    def test_setup_logfire_configures(self, mock_logfire):
        """Test setup_logfire calls configure."""
        from deal_attachments.core.logfire_setup import setup_logfire

        setup_logfire()
        mock_logfire.configure.assert_called_once()

    @patch("deal_attachments.core.logfire_setup.logfire")
    def test_setup_logfire_without_token_does_not_send(self, mock_logfire, monkeypatch):
        """Test telemetry export is disabled when no token is configured."""
        from deal_attachments.core import logfire_setup

        monkeypatch.setattr(logfire_setup.settings, "LOGFIRE_TOKEN", None)

        logfire_setup.setup_logfire()

        assert mock_logfire.configure.call_args.kwargs["send_to_logfire"] is False

    @patch("deal_attachments.core.logfire_setup.logfire")
    def test_instrument_app_instruments_fastapi(self, mock_logfire):
        """Test instrument_app instruments FastAPI."""
        from fastapi import FastAPI

        from deal_attachments.core.logfire_setup import instrument_app

        app = FastAPI()
        instrument_app(app)
        mock_logfire.instrument_fastapi.assert_called()

    @patch("deal_attachments.core.logfire_setup.logfire")
    def test_instrument_sqlalchemy_uses_sync_engine(self, mock_logfire):
        """Test the async engine's sync engine is instrumented."""
        from deal_attachments.core.logfire_setup import instrument_sqlalchemy

        engine = MagicMock()
        instrument_sqlalchemy(engine)
        mock_logfire.instrument_sqlalchemy.assert_called_once_with(engine=engine.sync_engine)
