from unittest.mock import Mock, patch

from twilio.base.exceptions import TwilioException
from twilio.request_validator import RequestValidator

from curlbot.services.twilio_service import build_twiml_reply, send_whatsapp_message, validate_signature

URL = "https://wa.example.com/whatsapp/incoming"
PARAMS = {"From": "whatsapp:+15551234567", "Body": "hola"}


class TestBuildTwimlReply:
    def test_wraps_message(self):
        xml = build_twiml_reply("Hi & welcome")
        assert "<Response><Message>Hi &amp; welcome</Message></Response>" in xml


class TestValidateSignature:
    @patch("curlbot.services.twilio_service.settings")
    def test_without_token(self, mock_settings):
        mock_settings.twilio_auth_token = None
        assert validate_signature(URL, PARAMS, "anything") is False

    @patch("curlbot.services.twilio_service.settings")
    def test_valid_signature(self, mock_settings):
        mock_settings.twilio_auth_token = "auth-token"
        signature = RequestValidator("auth-token").compute_signature(URL, PARAMS)
        assert validate_signature(URL, PARAMS, signature) is True

    @patch("curlbot.services.twilio_service.settings")
    def test_tampered_params(self, mock_settings):
        mock_settings.twilio_auth_token = "auth-token"
        signature = RequestValidator("auth-token").compute_signature(URL, PARAMS)
        assert validate_signature(URL, {**PARAMS, "Body": "changed"}, signature) is False


class TestSendWhatsappMessage:
    @patch("curlbot.services.twilio_service.settings")
    def test_not_configured(self, mock_settings):
        mock_settings.twilio_account_sid = None
        result = send_whatsapp_message("+15551234567", "hi")
        assert result.error_code == "twilio_not_configured"

    @patch("curlbot.services.twilio_service.get_twilio_client")
    @patch("curlbot.services.twilio_service.settings")
    def test_sends_with_whatsapp_prefixes(self, mock_settings, mock_get_client):
        mock_settings.twilio_account_sid = "AC123"
        mock_settings.twilio_auth_token = "auth-token"
        mock_settings.twilio_whatsapp_number = "+14155238886"
        mock_get_client.return_value.messages.create.return_value = Mock(sid="SM1")

        result = send_whatsapp_message("+15551234567", "hi")

        assert result.value == "SM1"
        mock_get_client.return_value.messages.create.assert_called_once_with(
            from_="whatsapp:+14155238886", to="whatsapp:+15551234567", body="hi"
        )

    @patch("curlbot.services.twilio_service.get_twilio_client")
    @patch("curlbot.services.twilio_service.settings")
    def test_twilio_error(self, mock_settings, mock_get_client):
        mock_settings.twilio_account_sid = "AC123"
        mock_settings.twilio_auth_token = "auth-token"
        mock_settings.twilio_whatsapp_number = "whatsapp:+14155238886"
        mock_get_client.return_value.messages.create.side_effect = TwilioException("invalid number")

        result = send_whatsapp_message("+15551234567", "hi")

        assert result.ok is False
        assert result.error_code == "twilio_error"
