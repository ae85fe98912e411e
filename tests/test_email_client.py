# =============================================================================
# tests/test_email_client.py - Resend Email Client Tests
# =============================================================================
# Unit tests for lib/email_client.py with httpx mocked out.
#
# Run with: poetry run pytest tests/test_email_client.py -v
# =============================================================================

from unittest.mock import MagicMock, patch

import httpx
import pytest

from lib.email_client import RESEND_API_URL, EmailSendError, send_email


@pytest.fixture
def enabled_settings():
    with patch("lib.email_client.settings") as settings:
        settings.email_enabled = True
        settings.RESEND_API_KEY = "re_test"
        settings.EMAIL_FROM = "Studio <studio@example.com>"
        yield settings


def _response(status_code, body=None, text=""):
    response = MagicMock()
    response.status_code = status_code
    response.json.return_value = body or {}
    response.text = text
    return response


class TestSendEmail:

    def test_disabled_without_api_key(self):
        with patch("lib.email_client.settings") as settings, \
             patch("lib.email_client.httpx.post") as post:
            settings.email_enabled = False
            assert send_email("jane@example.com", "Hello", "Body") is None
        post.assert_not_called()

    def test_posts_plain_text_payload(self, enabled_settings):
        with patch("lib.email_client.httpx.post", return_value=_response(200, {"id": "em_123"})) as post:
            email_id = send_email("jane@example.com", "Invoice", "Amount due: $70.00", reply_to="tutor@example.com")

        assert email_id == "em_123"
        url = post.call_args.args[0]
        payload = post.call_args.kwargs["json"]
        assert url == RESEND_API_URL
        assert payload["to"] == ["jane@example.com"]
        assert payload["text"] == "Amount due: $70.00"
        assert payload["reply_to"] == "tutor@example.com"
        assert post.call_args.kwargs["headers"]["Authorization"] == "Bearer re_test"

    def test_client_error_is_permanent(self, enabled_settings):
        with patch("lib.email_client.httpx.post", return_value=_response(422, text="invalid to")):
            with pytest.raises(EmailSendError) as exc:
                send_email("not-an-email", "Hi", "Body")
        assert exc.value.transient is False
        assert exc.value.status_code == 422

    @pytest.mark.parametrize("status_code", [429, 500, 503])
    def test_rate_limit_and_server_errors_are_transient(self, enabled_settings, status_code):
        with patch("lib.email_client.httpx.post", return_value=_response(status_code)):
            with pytest.raises(EmailSendError) as exc:
                send_email("jane@example.com", "Hi", "Body")
        assert exc.value.transient is True

    def test_network_error_is_transient(self, enabled_settings):
        with patch("lib.email_client.httpx.post", side_effect=httpx.ConnectTimeout("timed out")):
            with pytest.raises(EmailSendError) as exc:
                send_email(["a@example.com", "b@example.com"], "Hi", "Body")
        assert exc.value.transient is True
