from unittest.mock import patch

from curlbot.services.email_service import email_subject, render_consultation_email, send_consultation_email

PHONE = "+15551234567"
HISTORY = [
    {"role": "system", "content": "hidden"},
    {"role": "user", "content": [{"type": "image_url", "image_url": {"url": "https://wa.example.com/images/a.jpeg"}}]},
    {"role": "assistant", "content": "Gorgeous curls!"},
]


def _configure(mock_settings, **overrides):
    mock_settings.email_enabled = True
    mock_settings.email_provider = "resend"
    mock_settings.resend_api_key = "re_test"
    mock_settings.email_from = "bot@example.com"
    mock_settings.email_to = "salon@example.com"
    for key, value in overrides.items():
        setattr(mock_settings, key, value)


class TestRenderConsultationEmail:
    def test_subject(self):
        assert email_subject(PHONE) == "New Curl Consultation – +15551234567"

    def test_contains_summary_images_and_transcript(self):
        html = render_consultation_email(PHONE, "Curl type 3B", HISTORY, ["https://wa.example.com/images/b.jpeg"])
        assert "Curl type 3B" in html
        assert "https://wa.example.com/images/b.jpeg" in html
        assert "Assistant:" in html
        assert "Gorgeous curls!" in html
        assert "hidden" not in html

    def test_escapes_summary(self):
        html = render_consultation_email(PHONE, "<script>alert(1)</script>")
        assert "<script>" not in html


class TestSendConsultationEmail:
    @patch("curlbot.services.email_service.resend")
    @patch("curlbot.services.email_service.settings")
    def test_disabled(self, mock_settings, mock_resend):
        _configure(mock_settings, email_enabled=False)

        result = send_consultation_email(PHONE, "summary")

        assert result.ok is False
        assert result.error_code == "email_disabled"
        mock_resend.Emails.send.assert_not_called()

    @patch("curlbot.services.email_service.resend")
    @patch("curlbot.services.email_service.settings")
    def test_unsupported_provider(self, mock_settings, mock_resend):
        _configure(mock_settings, email_provider="mailgun")
        result = send_consultation_email(PHONE, "summary")
        assert result.error_code == "unsupported_provider"

    @patch("curlbot.services.email_service.resend")
    @patch("curlbot.services.email_service.settings")
    def test_missing_api_key(self, mock_settings, mock_resend):
        _configure(mock_settings, resend_api_key=None)
        result = send_consultation_email(PHONE, "summary")
        assert result.error_code == "missing_api_key"

    @patch("curlbot.services.email_service.resend")
    @patch("curlbot.services.email_service.settings")
    def test_sends(self, mock_settings, mock_resend):
        _configure(mock_settings)
        mock_resend.Emails.send.return_value = {"id": "em_1"}

        result = send_consultation_email(PHONE, "Curl type 3B", HISTORY)

        assert result.ok is True
        assert result.value == "em_1"
        assert mock_resend.api_key == "re_test"
        payload = mock_resend.Emails.send.call_args[0][0]
        assert payload["from"] == "bot@example.com"
        assert payload["to"] == ["salon@example.com"]
        assert PHONE in payload["subject"]
        assert "Curl type 3B" in payload["html"]

    @patch("curlbot.services.email_service.alert_error")
    @patch("curlbot.services.email_service.resend")
    @patch("curlbot.services.email_service.settings")
    def test_retries_once(self, mock_settings, mock_resend, mock_alert):
        _configure(mock_settings)
        mock_resend.Emails.send.side_effect = [RuntimeError("502"), {"id": "em_2"}]

        result = send_consultation_email(PHONE, "summary")

        assert result.value == "em_2"
        assert mock_resend.Emails.send.call_count == 2
        mock_alert.assert_not_called()

    @patch("curlbot.services.email_service.alert_error")
    @patch("curlbot.services.email_service.resend")
    @patch("curlbot.services.email_service.settings")
    def test_alerts_after_second_failure(self, mock_settings, mock_resend, mock_alert):
        _configure(mock_settings)
        mock_resend.Emails.send.side_effect = RuntimeError("502")

        result = send_consultation_email(PHONE, "summary")

        assert result.ok is False
        assert result.error_code == "send_failed"
        assert mock_resend.Emails.send.call_count == 2
        mock_alert.assert_called_once()
