"""Unit tests for sync_engine.context module."""

import pytest
from unittest.mock import patch

from src.config import ConfigError, RemoteConfig, SyncConfig
from src.remote_store import ConfluenceTransport, GitHubTransport, InMemoryTransport
from src.sync_engine import build_context, create_transport
from src.sync_engine.models import Strategy


class TestCreateTransport:
    """Test cases for create_transport."""

    def test_memory_backend(self):
        transport = create_transport(SyncConfig(remote=RemoteConfig(backend="memory")))

        assert isinstance(transport, InMemoryTransport)

    @patch('src.remote_store.auth.load_dotenv')
    def test_confluence_backend(self, mock_load_dotenv):
        config = SyncConfig(
            remote=RemoteConfig(backend="confluence", space_key="WIKI", parent_page_id="123"),
            env_file=".env.wiki",
        )

        transport = create_transport(config)

        assert isinstance(transport, ConfluenceTransport)
        mock_load_dotenv.assert_called_once_with(".env.wiki")

    @patch('src.remote_store.auth.load_dotenv')
    def test_github_backend(self, mock_load_dotenv):
        config = SyncConfig(remote=RemoteConfig(backend="github", repo="owner/wiki"))

        assert isinstance(create_transport(config), GitHubTransport)

    @patch('src.remote_store.auth.load_dotenv')
    def test_unknown_backend(self, mock_load_dotenv):
        config = SyncConfig(remote=RemoteConfig(backend="svn"))

        with pytest.raises(ConfigError) as exc_info:
            create_transport(config)

        assert exc_info.value.config_field == "remote.backend"


class TestBuildContext:
    """Test cases for build_context wiring."""

    def test_components_share_one_cache(self, context):
        """Every component works on the same cache instance."""
        assert context.index.cache is context.cache
        assert context.state_store.cache is context.cache
        assert context.orchestrator.cache is context.cache
        assert context.editor.cache is context.cache
        assert context.resolver.queue is context.queue

    def test_strategies_from_config(self, tmp_path, transport):
        """Configured default and overrides reach the registry."""
        config = SyncConfig(
            cache_dir=str(tmp_path / "cache"),
            default_strategy="merge",
            strategies={"rules": "manual"},
            remote=RemoteConfig(backend="memory"),
        )

        context = build_context(config, transport=transport)

        assert context.registry.lookup("welcome") == Strategy.MERGE
        assert context.registry.lookup("rules") == Strategy.MANUAL

    def test_store_options_from_config(self, tmp_path, transport):
        config = SyncConfig(
            cache_dir=str(tmp_path / "cache"),
            request_timeout=5,
            max_retries=1,
            interval_minutes=10,
            remote=RemoteConfig(backend="memory"),
        )

        context = build_context(config, transport=transport)

        assert context.store.timeout == 5
        assert context.store.max_retries == 1
        assert context.orchestrator.interval_minutes == 10
