"""GitHub transport over the repository contents API.

Each document is a file in a repository branch; the blob SHA is the revision
token, which the contents API already enforces on updates (a stale SHA
yields 409, a missing one on an existing file yields 422).
"""

import base64
import logging
from email.utils import parsedate_to_datetime
from typing import List, Optional

import requests

from src.models.document import RemoteDocument, format_timestamp
from .auth import Authenticator
from .errors import RateLimitedError
from .http_errors import translate_error
from .transport import DocumentTransport

logger = logging.getLogger(__name__)

API_ROOT = "https://api.github.com"


class GitHubTransport(DocumentTransport):
    """Reads and writes wiki documents as files in a GitHub repository.

    Example:
        >>> transport = GitHubTransport(Authenticator(), "owner/wiki", "main")
        >>> transport.read("rules.md", timeout=30).revision
        '3f786850e387550fdab836ed7e6dc881de23001b'
    """

    def __init__(
        self,
        authenticator: Authenticator,
        repo: str,
        branch: str = "main",
        session: Optional[requests.Session] = None,
    ):
        self._authenticator = authenticator
        self.repo = repo
        self.branch = branch
        self._session = session
        self.endpoint = f"{API_ROOT}/repos/{repo}"

    def _get_session(self) -> requests.Session:
        if self._session is None:
            token = self._authenticator.get_github_token()
            session = requests.Session()
            session.headers.update({
                "Authorization": f"Bearer {token}",
                "Accept": "application/vnd.github+json",
                "X-GitHub-Api-Version": "2022-11-28",
            })
            self._session = session
        return self._session

    def _request(self, method: str, url: str, operation: str, timeout: float,
                 path: Optional[str] = None, expected_revision: Optional[str] = None,
                 **kwargs) -> requests.Response:
        """Send a request and translate every failure into a typed error."""
        try:
            response = self._get_session().request(method, url, timeout=timeout, **kwargs)
        except requests.RequestException as e:
            raise translate_error(e, operation, self.endpoint, path) from e

        if response.status_code == 403 and response.headers.get("X-RateLimit-Remaining") == "0":
            raise RateLimitedError(self.endpoint, None)
        try:
            response.raise_for_status()
        except requests.HTTPError as e:
            raise translate_error(
                e, operation, self.endpoint, path,
                expected_revision=expected_revision,
            ) from e
        return response

    def _contents_url(self, path: str) -> str:
        return f"{self.endpoint}/contents/{path.lstrip('/')}"

    def read(self, path: str, timeout: float) -> RemoteDocument:
        response = self._request(
            "GET", self._contents_url(path), f"read({path})", timeout,
            path=path, params={"ref": self.branch},
        )
        payload = response.json()
        content = base64.b64decode(payload.get("content", "")).decode("utf-8")
        return RemoteDocument(
            path=path,
            content=content,
            revision=payload["sha"],
            last_modified=_http_date_to_iso(response.headers.get("Last-Modified")),
            metadata={"html_url": payload.get("html_url")},
        )

    def write(
        self,
        path: str,
        content: str,
        message: str,
        expected_revision: Optional[str],
        timeout: float,
    ) -> str:
        body = {
            "message": message,
            "content": base64.b64encode(content.encode("utf-8")).decode("ascii"),
            "branch": self.branch,
        }
        if expected_revision is not None:
            body["sha"] = expected_revision

        response = self._request(
            "PUT", self._contents_url(path), f"write({path})", timeout,
            path=path, expected_revision=expected_revision, json=body,
        )
        logger.debug(f"Wrote {path} to {self.repo}@{self.branch}")
        return response.json()["content"]["sha"]

    def list_index(self, timeout: float) -> List[str]:
        response = self._request(
            "GET", f"{self.endpoint}/git/trees/{self.branch}", "list_index", timeout,
            params={"recursive": "1"},
        )
        tree = response.json().get("tree", [])
        return sorted(
            entry["path"] for entry in tree
            if entry.get("type") == "blob" and entry["path"].endswith(".md")
        )

    def ping(self, timeout: float) -> None:
        self._request("GET", self.endpoint, "ping", timeout)


def _http_date_to_iso(value: Optional[str]) -> str:
    """Convert an RFC 1123 Last-Modified header to ISO 8601 UTC."""
    if not value:
        return ""
    try:
        return format_timestamp(parsedate_to_datetime(value))
    except (TypeError, ValueError):
        return ""
