from unittest.mock import MagicMock, Mock, patch

import httpx

from curlbot.services.crm_service import CONSULTATION_TAGS, upsert_customer

PHONE = "+15551234567"


def _configure(mock_settings):
    mock_settings.shopify_store_domain = "salon.myshopify.com"
    mock_settings.shopify_api_token = "shpat_test"
    mock_settings.shopify_api_version = "2023-04"


def _response(status_code, json_data=None):
    response = Mock()
    response.status_code = status_code
    response.json.return_value = json_data or {}
    response.text = ""
    return response


class TestUpsertCustomer:
    @patch("curlbot.services.crm_service.settings")
    def test_skipped_when_not_configured(self, mock_settings):
        mock_settings.shopify_store_domain = None
        mock_settings.shopify_api_token = None

        result = upsert_customer("Ana", PHONE)

        assert result.ok is False
        assert result.error_code == "shopify_not_configured"

    @patch("curlbot.services.crm_service.httpx.Client")
    @patch("curlbot.services.crm_service.settings")
    def test_creates_customer(self, mock_settings, mock_client_class):
        _configure(mock_settings)
        mock_client = MagicMock()
        mock_client_class.return_value.__enter__.return_value = mock_client
        mock_client.post.return_value = _response(201, {"customer": {"id": 10, "phone": PHONE}})

        result = upsert_customer("Ana", PHONE, note="Curl type 3B")

        assert result.ok is True
        assert result.value["id"] == 10
        url = mock_client.post.call_args[0][0]
        assert url == "https://salon.myshopify.com/admin/api/2023-04/customers.json"
        headers = mock_client.post.call_args[1]["headers"]
        assert headers["X-Shopify-Access-Token"] == "shpat_test"
        customer = mock_client.post.call_args[1]["json"]["customer"]
        assert customer == {"first_name": "Ana", "phone": PHONE, "tags": CONSULTATION_TAGS, "note": "Curl type 3B"}

    @patch("curlbot.services.crm_service.httpx.Client")
    @patch("curlbot.services.crm_service.settings")
    def test_updates_existing_customer(self, mock_settings, mock_client_class):
        _configure(mock_settings)
        mock_client = MagicMock()
        mock_client_class.return_value.__enter__.return_value = mock_client
        mock_client.post.return_value = _response(422, {"errors": {"phone": ["has already been taken"]}})
        mock_client.get.return_value = _response(200, {"customers": [{"id": 7, "tags": "vip, whatsapp"}]})
        mock_client.put.return_value = _response(200, {"customer": {"id": 7}})

        result = upsert_customer("Ana", PHONE)

        assert result.ok is True
        assert mock_client.get.call_args[1]["params"] == {"query": f"phone:{PHONE}"}
        assert mock_client.put.call_args[0][0].endswith("/customers/7.json")
        update = mock_client.put.call_args[1]["json"]["customer"]
        assert update["tags"] == "vip,whatsapp,consultation-lead,summary-complete"

    @patch("curlbot.services.crm_service.httpx.Client")
    @patch("curlbot.services.crm_service.settings")
    def test_existing_customer_not_found(self, mock_settings, mock_client_class):
        _configure(mock_settings)
        mock_client = MagicMock()
        mock_client_class.return_value.__enter__.return_value = mock_client
        mock_client.post.return_value = _response(422)
        mock_client.get.return_value = _response(200, {"customers": []})

        result = upsert_customer("Ana", PHONE)

        assert result.error_code == "not_found"
        mock_client.put.assert_not_called()

    @patch("curlbot.services.crm_service.httpx.Client")
    @patch("curlbot.services.crm_service.settings")
    def test_api_error(self, mock_settings, mock_client_class):
        _configure(mock_settings)
        mock_client = MagicMock()
        mock_client_class.return_value.__enter__.return_value = mock_client
        mock_client.post.return_value = _response(500)

        assert upsert_customer("Ana", PHONE).error_code == "shopify_error"

    @patch("curlbot.services.crm_service.httpx.Client")
    @patch("curlbot.services.crm_service.settings")
    def test_unreachable(self, mock_settings, mock_client_class):
        _configure(mock_settings)
        mock_client = MagicMock()
        mock_client_class.return_value.__enter__.return_value = mock_client
        mock_client.post.side_effect = httpx.ConnectError("down")

        assert upsert_customer("Ana", PHONE).error_code == "shopify_unreachable"
