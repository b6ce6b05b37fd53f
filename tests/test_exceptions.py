"""Unit tests for the exception types."""

import pytest

from pydbx.exceptions import (
    DropboxAPIError,
    DropboxAuthenticationError,
    DropboxError,
    DropboxRateLimitError,
    ErrorTag,
)


class TestDropboxAPIError:
    """Tests for DropboxAPIError."""

    def test_from_json_error_envelope(self):
        """Test parsing the standard error envelope."""
        body = b'{"error_summary": "path/not_found/..", "error": {".tag": "not_found"}}'
        error = DropboxAPIError.from_response(409, "Conflict", body)

        assert error.summary == "path/not_found/.."
        assert error.tag == "not_found"
        assert error.status_code == 409
        assert error.status == "409 Conflict"
        assert str(error) == "path/not_found/.."
        assert error.is_not_found()
        assert not error.is_no_permission()

    def test_from_plain_text_body(self):
        """Test that non-JSON bodies keep the text as the summary."""
        error = DropboxAPIError.from_response(400, "Bad Request", "Error in call to API")

        assert error.summary == "Error in call to API"
        assert error.tag == ""

    def test_from_empty_body_uses_status(self):
        """Test that an empty body falls back to the HTTP status."""
        error = DropboxAPIError.from_response(500, "Internal Server Error", b"")
        assert str(error) == "500 Internal Server Error"

    def test_error_without_tag(self):
        """Test JSON body where error is not an object."""
        body = '{"error_summary": "other/..", "error": "oops"}'
        error = DropboxAPIError.from_response(409, "Conflict", body)
        assert error.summary == "other/.."
        assert error.tag == ""

    def test_no_permission(self):
        error = DropboxAPIError("no_permission/..", tag="no_permission")
        assert error.is_no_permission()
        assert error.has_tag(ErrorTag.NO_PERMISSION)
        assert error.has_tag("no_permission")

    def test_subclass_from_response(self):
        """Test from_response builds the subclass it is called on."""
        error = DropboxAuthenticationError.from_response(
            401, "Unauthorized", b'{"error_summary": "invalid_access_token/"}'
        )
        assert isinstance(error, DropboxAuthenticationError)
        assert isinstance(error, DropboxAPIError)

    def test_rate_limit_defaults(self):
        error = DropboxRateLimitError("too_many_requests/")
        assert error.status_code == 429
        assert error.retry_after is None

    def test_is_dropbox_error(self):
        with pytest.raises(DropboxError):
            raise DropboxAPIError("boom")


class TestErrorTag:
    """Tests for ErrorTag values."""

    @pytest.mark.parametrize(
        "tag,value",
        [
            (ErrorTag.NOT_FOUND, "not_found"),
            (ErrorTag.INSUFFICIENT_SPACE, "insufficient_space"),
            (ErrorTag.TOO_MANY_WRITE_OPERATIONS, "too_many_write_operations"),
        ],
    )
    def test_values(self, tag, value):
        assert tag.value == value
        assert tag == value
