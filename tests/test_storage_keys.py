import pytest

from curlbot.services.storage_keys import (
    chat_history_key,
    doc_chunk_key,
    is_valid_phone,
    media_key_from_url,
    media_object_key,
    media_prefix,
    normalize_phone_number,
    phone_from_history_key,
)


class TestNormalizePhoneNumber:
    def test_strips_whatsapp_scheme(self):
        assert normalize_phone_number("whatsapp:+15551234567") == "+15551234567"

    def test_scheme_is_case_insensitive_and_trimmed(self):
        assert normalize_phone_number("  WhatsApp:+15551234567 ") == "+15551234567"

    def test_none_becomes_empty(self):
        assert normalize_phone_number(None) == ""


class TestIsValidPhone:
    def test_e164_number(self):
        assert is_valid_phone("+15551234567") is True

    def test_missing_plus(self):
        assert is_valid_phone("15551234567") is False

    def test_too_short(self):
        assert is_valid_phone("+123") is False

    def test_empty(self):
        assert is_valid_phone("") is False


class TestKeys:
    def test_chat_history_key_normalizes_whatsapp_ids(self):
        assert chat_history_key("whatsapp", "whatsapp:+15551234567") == "whatsapp:+15551234567/history.json"

    def test_chat_history_key_rejects_missing_inputs(self):
        with pytest.raises(ValueError):
            chat_history_key("whatsapp", "")

    def test_media_prefix(self):
        assert media_prefix("whatsapp", "+15551234567") == "whatsapp:+15551234567/"

    def test_media_prefix_rejects_missing_inputs(self):
        with pytest.raises(ValueError):
            media_prefix("", "+15551234567")

    def test_media_object_key(self):
        key = media_object_key("whatsapp", "+15551234567", "1700000000000-0.jpeg")
        assert key == "whatsapp:+15551234567/1700000000000-0.jpeg"

    def test_doc_chunk_key(self):
        assert doc_chunk_key("acme", "kb", "docs/care.md", 2) == "kv/docs/github:acme/kb/docs/care.md/chunk2"


class TestKeyParsing:
    def test_phone_from_history_key(self):
        assert phone_from_history_key("whatsapp:+15551234567/history.json") == "+15551234567"

    def test_phone_from_unrelated_key(self):
        assert phone_from_history_key("booksy:services") is None

    def test_media_key_from_proxy_url(self):
        url = "https://wa.example.com/images/whatsapp%3A%2B15551234567%2F1-0.jpeg"
        assert media_key_from_url(url) == "whatsapp:+15551234567/1-0.jpeg"

    def test_media_key_from_foreign_url(self):
        assert media_key_from_url("https://cdn.example.com/photo.jpg") is None

    def test_media_key_from_empty_url(self):
        assert media_key_from_url(None) is None
