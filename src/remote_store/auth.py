"""Authentication module for loading remote store credentials.

Credentials are loaded from environment variables using python-dotenv. They
are validated on access, never cached beyond the process environment and
never logged.
"""

import os
from typing import NamedTuple

from dotenv import load_dotenv

from .errors import UnauthenticatedError


class ConfluenceCredentials(NamedTuple):
    """Confluence API credentials."""
    url: str
    user: str
    api_token: str


class Authenticator:
    """Loads and validates backend credentials from environment variables.

    Required environment variables per backend:
        confluence: CONFLUENCE_URL, CONFLUENCE_USER, CONFLUENCE_API_TOKEN
        github: GITHUB_TOKEN

    Example:
        >>> auth = Authenticator()
        >>> creds = auth.get_confluence_credentials()
        >>> print(f"Connecting to {creds.url}")
    """

    def __init__(self, env_file: str = None):
        """Load environment variables from a .env file (if present).

        Args:
            env_file: Explicit .env path; defaults to dotenv's lookup
        """
        load_dotenv(env_file)

    def get_confluence_credentials(self) -> ConfluenceCredentials:
        """Get Confluence credentials from environment variables.

        Raises:
            UnauthenticatedError: If any required credential is missing
        """
        url = os.getenv('CONFLUENCE_URL')
        user = os.getenv('CONFLUENCE_USER')
        api_token = os.getenv('CONFLUENCE_API_TOKEN')

        if not (url and user and api_token):
            raise UnauthenticatedError(
                user=user if user else "unknown",
                endpoint=url if url else "unknown",
            )

        return ConfluenceCredentials(url=url, user=user, api_token=api_token)

    def get_github_token(self) -> str:
        """Get the GitHub personal access token.

        Raises:
            UnauthenticatedError: If GITHUB_TOKEN is not set
        """
        token = os.getenv('GITHUB_TOKEN')
        if not token:
            raise UnauthenticatedError(user="unknown", endpoint="https://api.github.com")
        return token
