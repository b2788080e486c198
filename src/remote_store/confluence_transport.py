"""Confluence transport built on atlassian-python-api.

Document paths map to page titles below one parent page of a space, so the
wiki keeps a flat, human-browsable layout in Confluence. The page version
number is the revision token. Bodies are stored through the storage_format
codec (markdown macro, or markdownify for natively edited pages).
"""

import logging
from typing import Any, Dict, List, Optional

from atlassian import Confluence

from src.models.document import RemoteDocument
from .auth import Authenticator
from .errors import DocumentNotFoundError, RevisionConflictError
from .http_errors import translate_error
from .storage_format import extract_markdown, wrap_markdown
from .transport import DocumentTransport

logger = logging.getLogger(__name__)

PAGE_EXPAND = "body.storage,version"
CHILD_PAGE_LIMIT = 100


class ConfluenceTransport(DocumentTransport):
    """Reads and writes wiki documents as Confluence pages.

    Example:
        >>> transport = ConfluenceTransport(Authenticator(), "WIKI", "123456")
        >>> transport.read("SUMMARY.md", timeout=30).revision
        '7'
    """

    def __init__(
        self,
        authenticator: Authenticator,
        space_key: str,
        parent_page_id: Optional[str] = None,
    ):
        """Initialize the transport.

        The Confluence client is created lazily on first use so that a
        missing .env does not fail construction.

        Args:
            authenticator: Source of Confluence credentials
            space_key: Space holding the wiki pages
            parent_page_id: Page under which wiki pages are created
        """
        self._authenticator = authenticator
        self.space_key = space_key
        self.parent_page_id = parent_page_id
        self._client: Optional[Confluence] = None
        self._timeout: Optional[float] = None
        self.endpoint = "confluence"

    def _get_client(self, timeout: float) -> Confluence:
        """Get or create the Confluence client for the given timeout."""
        if self._client is None or self._timeout != timeout:
            creds = self._authenticator.get_confluence_credentials()
            self.endpoint = creds.url
            self._user = creds.user
            self._client = Confluence(
                url=creds.url,
                username=creds.user,
                password=creds.api_token,
                cloud=True,
                timeout=timeout,
            )
            self._timeout = timeout
        return self._client

    def _translate(self, exception: Exception, operation: str, path: Optional[str] = None,
                   expected_revision: Optional[str] = None) -> Exception:
        return translate_error(
            exception,
            operation,
            endpoint=self.endpoint,
            path=path,
            user=getattr(self, '_user', "unknown"),
            expected_revision=expected_revision,
        )

    def _find_page(self, client: Confluence, path: str) -> Optional[Dict[str, Any]]:
        try:
            page = client.get_page_by_title(
                space=self.space_key,
                title=path,
                expand=PAGE_EXPAND,
            )
        except Exception as e:
            translated = self._translate(e, f"get_page_by_title({path})", path)
            if isinstance(translated, DocumentNotFoundError):
                return None
            raise translated from e
        return page or None

    def read(self, path: str, timeout: float) -> RemoteDocument:
        client = self._get_client(timeout)
        page = self._find_page(client, path)
        if page is None:
            raise DocumentNotFoundError(path)

        version = page.get("version") or {}
        storage = ((page.get("body") or {}).get("storage") or {}).get("value", "")
        return RemoteDocument(
            path=path,
            content=extract_markdown(storage),
            revision=str(version.get("number", 1)),
            last_modified=version.get("when", ""),
            metadata={"page_id": page.get("id")},
        )

    def write(
        self,
        path: str,
        content: str,
        message: str,
        expected_revision: Optional[str],
        timeout: float,
    ) -> str:
        client = self._get_client(timeout)
        page = self._find_page(client, path)
        body = wrap_markdown(content)

        if page is None:
            if expected_revision is not None:
                raise RevisionConflictError(path, expected_revision, None)
            try:
                result = client.create_page(
                    space=self.space_key,
                    title=path,
                    body=body,
                    parent_id=self.parent_page_id,
                    representation="storage",
                )
            except Exception as e:
                raise self._translate(e, f"create_page({path})", path) from e
            logger.info(f"Created Confluence page '{path}'")
            return str(((result or {}).get("version") or {}).get("number", 1))

        current = str((page.get("version") or {}).get("number", 1))
        if expected_revision is None or str(expected_revision) != current:
            raise RevisionConflictError(path, expected_revision, current)

        try:
            result = client.update_page(
                page_id=page["id"],
                title=path,
                body=body,
                representation="storage",
                minor_edit=False,
                version_comment=message,
            )
        except Exception as e:
            raise self._translate(e, f"update_page({path})", path, expected_revision) from e

        new_revision = ((result or {}).get("version") or {}).get("number")
        return str(new_revision if new_revision is not None else int(current) + 1)

    def list_index(self, timeout: float) -> List[str]:
        if not self.parent_page_id:
            return []
        client = self._get_client(timeout)
        titles: List[str] = []
        start = 0
        while True:
            try:
                children = client.get_page_child_by_type(
                    self.parent_page_id,
                    type="page",
                    start=start,
                    limit=CHILD_PAGE_LIMIT,
                )
            except Exception as e:
                raise self._translate(e, f"get_page_child_by_type({self.parent_page_id})") from e
            children = children or []
            titles.extend(child.get("title", "") for child in children)
            if len(children) < CHILD_PAGE_LIMIT:
                break
            start += CHILD_PAGE_LIMIT
        return sorted(title for title in titles if title)

    def ping(self, timeout: float) -> None:
        client = self._get_client(timeout)
        try:
            client.get_space(self.space_key)
        except Exception as e:
            raise self._translate(e, f"get_space({self.space_key})") from e
