"""Unit tests for remote_store.confluence_transport and github_transport modules."""

import base64

import pytest
from unittest.mock import MagicMock, Mock, patch

import requests

from src.remote_store.auth import ConfluenceCredentials
from src.remote_store.confluence_transport import ConfluenceTransport
from src.remote_store.errors import (
    DocumentNotFoundError,
    RateLimitedError,
    RevisionConflictError,
    TransientNetworkError,
    UnauthenticatedError,
)
from src.remote_store.github_transport import GitHubTransport
from src.remote_store.storage_format import wrap_markdown


@pytest.fixture
def authenticator():
    auth = Mock()
    auth.get_confluence_credentials.return_value = ConfluenceCredentials(
        url="https://test.atlassian.net/wiki",
        user="test@example.com",
        api_token="token",
    )
    auth.get_github_token.return_value = "ghp_test"
    return auth


def _page(number=3, content="# Rules"):
    return {
        "id": "98765",
        "version": {"number": number, "when": "2024-01-15T09:00:00.000Z"},
        "body": {"storage": {"value": wrap_markdown(content)}},
    }


class TestConfluenceTransport:
    """Test cases for ConfluenceTransport."""

    @patch('src.remote_store.confluence_transport.Confluence')
    def test_client_created_lazily(self, mock_confluence, authenticator):
        """Construction does not touch credentials or the network."""
        ConfluenceTransport(authenticator, "WIKI", "123")

        mock_confluence.assert_not_called()
        authenticator.get_confluence_credentials.assert_not_called()

    @patch('src.remote_store.confluence_transport.Confluence')
    def test_read_returns_markdown_and_version(self, mock_confluence, authenticator):
        """The page version number becomes the revision."""
        mock_confluence.return_value.get_page_by_title.return_value = _page(3, "# Rules\n")
        transport = ConfluenceTransport(authenticator, "WIKI", "123")

        document = transport.read("rules.md", timeout=10)

        assert document.content == "# Rules\n"
        assert document.revision == "3"
        assert document.metadata == {"page_id": "98765"}
        mock_confluence.assert_called_once_with(
            url="https://test.atlassian.net/wiki",
            username="test@example.com",
            password="token",
            cloud=True,
            timeout=10,
        )

    @patch('src.remote_store.confluence_transport.Confluence')
    def test_read_missing_page(self, mock_confluence, authenticator):
        """A missing page raises DocumentNotFoundError."""
        mock_confluence.return_value.get_page_by_title.return_value = None
        transport = ConfluenceTransport(authenticator, "WIKI", "123")

        with pytest.raises(DocumentNotFoundError):
            transport.read("rules.md", timeout=10)

    @patch('src.remote_store.confluence_transport.Confluence')
    def test_read_translates_auth_failure(self, mock_confluence, authenticator):
        """Library errors are translated into the typed taxonomy."""
        mock_confluence.return_value.get_page_by_title.side_effect = Exception(
            "401 Client Error: Unauthorized"
        )
        transport = ConfluenceTransport(authenticator, "WIKI", "123")

        with pytest.raises(UnauthenticatedError):
            transport.read("rules.md", timeout=10)

    @patch('src.remote_store.confluence_transport.Confluence')
    def test_write_updates_with_matching_version(self, mock_confluence, authenticator):
        """An update with the current version calls update_page."""
        client = mock_confluence.return_value
        client.get_page_by_title.return_value = _page(3)
        client.update_page.return_value = {"version": {"number": 4}}
        transport = ConfluenceTransport(authenticator, "WIKI", "123")

        revision = transport.write("rules.md", "# New", "Update rules", "3", timeout=10)

        assert revision == "4"
        kwargs = client.update_page.call_args.kwargs
        assert kwargs["page_id"] == "98765"
        assert kwargs["version_comment"] == "Update rules"
        assert "<![CDATA[# New]]>" in kwargs["body"]

    @patch('src.remote_store.confluence_transport.Confluence')
    def test_write_with_stale_version_conflicts(self, mock_confluence, authenticator):
        """A stale expected revision is rejected before any update call."""
        client = mock_confluence.return_value
        client.get_page_by_title.return_value = _page(5)
        transport = ConfluenceTransport(authenticator, "WIKI", "123")

        with pytest.raises(RevisionConflictError) as exc_info:
            transport.write("rules.md", "# New", "Update rules", "3", timeout=10)

        assert exc_info.value.actual_revision == "5"
        client.update_page.assert_not_called()

    @patch('src.remote_store.confluence_transport.Confluence')
    def test_write_creates_missing_page(self, mock_confluence, authenticator):
        """Creating a page places it under the parent page."""
        client = mock_confluence.return_value
        client.get_page_by_title.return_value = None
        client.create_page.return_value = {"version": {"number": 1}}
        transport = ConfluenceTransport(authenticator, "WIKI", "123")

        revision = transport.write("faq.md", "# FAQ", "Create faq", None, timeout=10)

        assert revision == "1"
        assert client.create_page.call_args.kwargs["parent_id"] == "123"

    @patch('src.remote_store.confluence_transport.Confluence')
    def test_create_over_existing_page_conflicts(self, mock_confluence, authenticator):
        """expected_revision=None fails when the page exists."""
        mock_confluence.return_value.get_page_by_title.return_value = _page(2)
        transport = ConfluenceTransport(authenticator, "WIKI", "123")

        with pytest.raises(RevisionConflictError):
            transport.write("rules.md", "# New", "Create", None, timeout=10)

    @patch('src.remote_store.confluence_transport.Confluence')
    def test_list_index_pages_through_children(self, mock_confluence, authenticator):
        """Child page titles are collected across result pages."""
        client = mock_confluence.return_value
        first = [{"title": f"page-{i:03d}.md"} for i in range(100)]
        client.get_page_child_by_type.side_effect = [first, [{"title": "SUMMARY.md"}]]
        transport = ConfluenceTransport(authenticator, "WIKI", "123")

        paths = transport.list_index(timeout=10)

        assert len(paths) == 101
        assert client.get_page_child_by_type.call_count == 2


class TestGitHubTransport:
    """Test cases for GitHubTransport."""

    @pytest.fixture
    def session(self):
        return MagicMock(spec=requests.Session)

    @staticmethod
    def _response(status=200, payload=None, headers=None):
        response = MagicMock()
        response.status_code = status
        response.headers = headers or {}
        response.json.return_value = payload or {}
        if status >= 400:
            response.raise_for_status.side_effect = requests.HTTPError(
                f"{status} Error", response=response
            )
        return response

    def test_read_decodes_content(self, authenticator, session):
        """File content is base64-decoded; the blob sha is the revision."""
        session.request.return_value = self._response(payload={
            "content": base64.b64encode(b"# Rules\n").decode("ascii"),
            "sha": "abc123",
        }, headers={"Last-Modified": "Mon, 15 Jan 2024 10:00:00 GMT"})
        transport = GitHubTransport(authenticator, "owner/wiki", session=session)

        document = transport.read("rules.md", timeout=10)

        assert document.content == "# Rules\n"
        assert document.revision == "abc123"
        assert document.last_modified == "2024-01-15T10:00:00+00:00"
        assert session.request.call_args.kwargs["params"] == {"ref": "main"}

    def test_write_sends_sha_of_expected_revision(self, authenticator, session):
        """Updates carry the expected blob sha."""
        session.request.return_value = self._response(payload={"content": {"sha": "def456"}})
        transport = GitHubTransport(authenticator, "owner/wiki", branch="wiki", session=session)

        revision = transport.write("rules.md", "# New", "Update rules", "abc123", timeout=10)

        assert revision == "def456"
        body = session.request.call_args.kwargs["json"]
        assert body["sha"] == "abc123"
        assert body["branch"] == "wiki"
        assert base64.b64decode(body["content"]) == b"# New"

    def test_write_create_omits_sha(self, authenticator, session):
        """Creates send no sha."""
        session.request.return_value = self._response(payload={"content": {"sha": "new"}})
        transport = GitHubTransport(authenticator, "owner/wiki", session=session)

        transport.write("faq.md", "# FAQ", "Create faq", None, timeout=10)

        assert "sha" not in session.request.call_args.kwargs["json"]

    @pytest.mark.parametrize("status,expected", [
        (404, DocumentNotFoundError),
        (409, RevisionConflictError),
        (502, TransientNetworkError),
    ])
    def test_http_failures_are_translated(self, authenticator, session, status, expected):
        """HTTP error statuses raise typed errors."""
        session.request.return_value = self._response(status=status)
        transport = GitHubTransport(authenticator, "owner/wiki", session=session)

        with pytest.raises(expected):
            transport.read("rules.md", timeout=10)

    def test_exhausted_rate_limit_is_rate_limited(self, authenticator, session):
        """403 with no remaining quota is a rate limit, not a permission error."""
        session.request.return_value = self._response(
            status=403, headers={"X-RateLimit-Remaining": "0"}
        )
        transport = GitHubTransport(authenticator, "owner/wiki", session=session)

        with pytest.raises(RateLimitedError):
            transport.read("rules.md", timeout=10)

    def test_connection_error_is_transient(self, authenticator, session):
        """requests connection failures are transient."""
        session.request.side_effect = requests.ConnectionError("refused")
        transport = GitHubTransport(authenticator, "owner/wiki", session=session)

        with pytest.raises(TransientNetworkError):
            transport.ping(timeout=10)

    def test_list_index_returns_markdown_blobs(self, authenticator, session):
        """Only markdown files of the tree are listed."""
        session.request.return_value = self._response(payload={"tree": [
            {"path": "rules.md", "type": "blob"},
            {"path": "guides", "type": "tree"},
            {"path": "logo.png", "type": "blob"},
            {"path": "SUMMARY.md", "type": "blob"},
        ]})
        transport = GitHubTransport(authenticator, "owner/wiki", session=session)

        assert transport.list_index(timeout=10) == ["SUMMARY.md", "rules.md"]

    @patch('src.remote_store.github_transport.requests.Session')
    def test_session_uses_bearer_token(self, mock_session_cls, authenticator):
        """The lazily created session authenticates with the token."""
        mock_session = mock_session_cls.return_value
        mock_session.headers = {}
        mock_session.request.return_value = self._response(payload={})
        transport = GitHubTransport(authenticator, "owner/wiki")

        transport.ping(timeout=10)

        assert mock_session.headers["Authorization"] == "Bearer ghp_test"
