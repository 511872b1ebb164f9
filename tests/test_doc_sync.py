import hashlib
import hmac
from unittest.mock import Mock, patch

from curlbot.models import DocChunk
from curlbot.services.doc_sync_service import (
    DocSyncError,
    build_prompt,
    changed_markdown_paths,
    chunk_text,
    document_prompt,
    list_documents,
    sync_document,
    verify_github_signature,
)


class TestChunkText:
    def test_short_text_is_one_chunk(self):
        assert chunk_text("curl care basics") == ["curl care basics"]

    def test_splits_on_spaces(self):
        assert chunk_text("aaaa bbbb cccc", max_tokens=2) == ["aaaa", "bbbb", "cccc"]

    def test_hard_split_keeps_every_character(self):
        chunks = chunk_text("x" * 10, max_tokens=1)
        assert chunks == ["xxxx", "xxxx", "xx"]

    def test_empty(self):
        assert chunk_text("") == []


class TestBuildPrompt:
    def test_joins_chunks_under_title(self):
        assert build_prompt("care.md", ["one", "two"]) == "Here is the content of care.md:\n\none\n\ntwo"


class TestVerifyGithubSignature:
    def _sign(self, secret, body):
        return "sha256=" + hmac.new(secret.encode(), body, hashlib.sha256).hexdigest()

    def test_valid(self):
        body = b'{"ref": "refs/heads/main"}'
        assert verify_github_signature(body, self._sign("s3cret", body), secret="s3cret") is True

    def test_wrong_secret(self):
        body = b"{}"
        assert verify_github_signature(body, self._sign("other", body), secret="s3cret") is False

    def test_missing_signature(self):
        assert verify_github_signature(b"{}", None, secret="s3cret") is False

    def test_no_secret_configured(self):
        assert verify_github_signature(b"{}", None, secret="") is True


class TestChangedMarkdownPaths:
    def test_collects_added_and_modified_markdown(self):
        payload = {
            "commits": [
                {"added": ["docs/care.md", "img/curl.png"], "modified": ["README.MD"]},
                {"added": [], "modified": ["docs/care.md"], "removed": ["old.md"]},
            ]
        }
        assert changed_markdown_paths(payload) == ["docs/care.md", "README.MD"]

    def test_no_commits(self):
        assert changed_markdown_paths({}) == []


class TestSyncDocument:
    @patch("curlbot.services.doc_sync_service.get_llm_provider")
    @patch("curlbot.services.doc_sync_service.fetch_markdown")
    def test_replaces_chunks(self, mock_fetch, mock_get_provider):
        mock_fetch.return_value = "aaaa bbbb"
        mock_get_provider.return_value.embed.return_value = [[0.1], [0.2]]
        db = Mock()

        with patch("curlbot.services.doc_sync_service.chunk_text", return_value=["aaaa", "bbbb"]):
            result = sync_document(db, "acme", "kb", "docs/care.md")

        assert result.ok is True
        assert result.value == 2
        db.query.return_value.filter.return_value.delete.assert_called_once()
        added = [call[0][0] for call in db.add.call_args_list]
        assert [row.key for row in added] == [
            "kv/docs/github:acme/kb/docs/care.md/chunk0",
            "kv/docs/github:acme/kb/docs/care.md/chunk1",
        ]
        assert added[1].embedding == [0.2]
        db.commit.assert_called_once()

    @patch("curlbot.services.doc_sync_service.fetch_markdown")
    def test_fetch_failure(self, mock_fetch):
        mock_fetch.side_effect = DocSyncError("Failed to fetch document: 404", status_code=404)
        db = Mock()

        result = sync_document(db, "acme", "kb", "missing.md")

        assert result.ok is False
        assert result.error_code == "fetch_failed"
        db.commit.assert_not_called()

    @patch("curlbot.services.doc_sync_service.get_llm_provider")
    @patch("curlbot.services.doc_sync_service.fetch_markdown")
    def test_embedding_failure(self, mock_fetch, mock_get_provider):
        mock_fetch.return_value = "content"
        mock_get_provider.return_value.embed.side_effect = RuntimeError("quota")
        db = Mock()

        result = sync_document(db, "acme", "kb", "docs/care.md")

        assert result.error_code == "embed_failed"
        db.add.assert_not_called()


def _chunk(index, content):
    return DocChunk(
        key=f"kv/docs/github:acme/kb/care.md/chunk{index}",
        owner="acme",
        repo="kb",
        path="care.md",
        chunk_index=index,
        content=content,
    )


class TestStoredDocuments:
    def test_list_documents_links_each_chunk_to_its_document(self):
        db = Mock()
        db.query.return_value.order_by.return_value.all.return_value = [_chunk(0, "wash day")]

        assert list_documents(db) == [
            {"key": "kv/docs/github:acme/kb/care.md/chunk0", "chars": 8, "document": "acme/kb/care.md"}
        ]

    def test_document_prompt_reassembles_chunks(self):
        db = Mock()
        db.query.return_value.filter.return_value.order_by.return_value.all.return_value = [
            _chunk(0, "wash day"),
            _chunk(1, "deep condition"),
        ]

        prompt = document_prompt(db, "acme", "kb", "care.md")

        assert prompt == "Here is the content of care.md:\n\nwash day\n\ndeep condition"

    def test_document_prompt_unknown_document(self):
        db = Mock()
        db.query.return_value.filter.return_value.order_by.return_value.all.return_value = []

        assert document_prompt(db, "acme", "kb", "missing.md") is None
