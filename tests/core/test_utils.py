"""
Tests for the handle_http_errors decorator.
"""
import ssl

import pytest
from unittest.mock import AsyncMock, MagicMock

from googleapiclient.errors import HttpError

from core.utils import TransientNetworkError, handle_http_errors
from proposals.errors import ErrorCode, MutationFailure


def _http_error(status, content=b"error"):
    mock_resp = MagicMock()
    mock_resp.status = status
    mock_resp.reason = "Error"
    return HttpError(mock_resp, content)


class TestHandleHttpErrors:
    """Tests for API error mapping."""

    @pytest.mark.asyncio
    async def test_passes_result_through(self):
        """Successful calls are untouched."""
        @handle_http_errors("read_document", is_read_only=True)
        async def mock_func():
            return "ok"

        assert await mock_func() == "ok"

    @pytest.mark.asyncio
    async def test_read_permission_error(self):
        """A 403 on read names the missing scope."""
        @handle_http_errors("read_document", is_read_only=True, service_type="docs")
        async def mock_func(document_id):
            raise _http_error(403)

        with pytest.raises(Exception) as exc_info:
            await mock_func(document_id="doc1")
        assert "docs scope" in str(exc_info.value)
        assert not isinstance(exc_info.value, MutationFailure)

    @pytest.mark.asyncio
    async def test_write_error_is_mutation_failure(self):
        """A rejected write raises MutationFailure with the target id."""
        @handle_http_errors("apply_sheet_edit", service_type="sheets")
        async def mock_func(spreadsheet_id):
            raise _http_error(400, b"Invalid range")

        with pytest.raises(MutationFailure) as exc_info:
            await mock_func(spreadsheet_id="s1")

        error = exc_info.value.error
        assert error.code == ErrorCode.MUTATION_FAILURE.value
        assert error.context.received == {"operation": "apply_sheet_edit", "target_id": "s1"}

    @pytest.mark.asyncio
    async def test_write_not_found(self):
        """A 404 on write reports the missing file."""
        @handle_http_errors("apply_doc_edit", service_type="docs")
        async def mock_func(document_id):
            raise _http_error(404)

        with pytest.raises(MutationFailure) as exc_info:
            await mock_func(document_id="gone")
        assert "docs file was not found" in str(exc_info.value)


class TestSslRetries:
    """Tests for transient SSL error handling."""

    @pytest.mark.asyncio
    async def test_read_retries_then_succeeds(self, monkeypatch):
        """Read-only calls are retried after an SSL error."""
        monkeypatch.setattr("core.utils.asyncio.sleep", AsyncMock())
        calls = []

        @handle_http_errors("read_document", is_read_only=True)
        async def mock_func():
            calls.append(1)
            if len(calls) == 1:
                raise ssl.SSLError("handshake")
            return "ok"

        assert await mock_func() == "ok"
        assert len(calls) == 2

    @pytest.mark.asyncio
    async def test_write_is_not_retried(self, monkeypatch):
        """Writes fail on the first SSL error."""
        monkeypatch.setattr("core.utils.asyncio.sleep", AsyncMock())
        calls = []

        @handle_http_errors("apply_doc_edit")
        async def mock_func():
            calls.append(1)
            raise ssl.SSLError("handshake")

        with pytest.raises(TransientNetworkError):
            await mock_func()
        assert len(calls) == 1
