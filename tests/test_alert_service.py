from unittest.mock import MagicMock, Mock, patch

from curlbot.services.alert_service import alert_error, send_alert


def _configure(mock_settings):
    mock_settings.alert_bot_token = "test-token"
    mock_settings.alert_chat_id = "test-chat"


class TestSendAlert:
    @patch("curlbot.services.alert_service.settings")
    def test_returns_false_when_not_configured(self, mock_settings):
        mock_settings.alert_bot_token = None
        mock_settings.alert_chat_id = None
        assert send_alert("ERROR", "Test message") is False

    @patch("curlbot.services.alert_service.httpx.Client")
    @patch("curlbot.services.alert_service.settings")
    def test_sends_alert_to_telegram(self, mock_settings, mock_client_class):
        _configure(mock_settings)
        mock_client = MagicMock()
        mock_client_class.return_value.__enter__.return_value = mock_client
        mock_client.post.return_value = Mock(status_code=200)

        result = send_alert("ERROR", "Email failed", {"phone": "+15551234567"})

        assert result is True
        call_args = mock_client.post.call_args
        assert "api.telegram.org/bottest-token" in call_args[0][0]
        json_data = call_args[1]["json"]
        assert json_data["chat_id"] == "test-chat"
        assert "ERROR" in json_data["text"]
        assert "+15551234567" in json_data["text"]

    @patch("curlbot.services.alert_service.httpx.Client")
    @patch("curlbot.services.alert_service.settings")
    def test_returns_false_on_telegram_error(self, mock_settings, mock_client_class):
        _configure(mock_settings)
        mock_client = MagicMock()
        mock_client_class.return_value.__enter__.return_value = mock_client
        mock_client.post.return_value = Mock(status_code=400)

        assert send_alert("ERROR", "Test message") is False

    @patch("curlbot.services.alert_service.httpx.Client")
    @patch("curlbot.services.alert_service.settings")
    def test_returns_false_on_exception(self, mock_settings, mock_client_class):
        _configure(mock_settings)
        mock_client_class.return_value.__enter__.side_effect = Exception("Network error")

        assert send_alert("ERROR", "Test message") is False


class TestAlertHelpers:
    @patch("curlbot.services.alert_service.send_alert")
    def test_alert_error(self, mock_send):
        mock_send.return_value = True
        alert_error("Error message", {"key": "value"})
        mock_send.assert_called_once_with("ERROR", "Error message", {"key": "value"})
