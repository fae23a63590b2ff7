"""Tests for tool registration, routing and the CLI parser of the MCP server.

Handler behaviour is tested in tests/test_mcp/tools/; this file covers
the server layer only.
"""

from unittest.mock import patch

import pytest

from vault_publisher import __version__
from vault_publisher.logger import DEFAULT_MCP_LOG_FILE
from vault_publisher.mcp import server
from vault_publisher.mcp.server import (
    PING_SPEC,
    build_parser,
    get_context,
    get_registry,
    handle_call_tool,
    handle_list_tools,
    set_context,
    set_registry,
)
from vault_publisher.mcp.tools import ALL_SPECS
from vault_publisher.mcp.tools.registry import PublishContext, ToolRegistry
from vault_publisher.publish.errors import RemoteUnavailable
from vault_publisher.vault import VaultSource


@pytest.fixture
def context(fake_client, settings, make_vault):
    fake_client.seed({})
    root = make_vault({"a.md": "---\npublish: true\n---\nA"})
    return PublishContext(
        client=fake_client, settings=settings, source=VaultSource(root)
    )


@pytest.fixture
def initialised(context):
    set_registry(ToolRegistry([PING_SPEC] + ALL_SPECS))
    set_context(context)
    yield context
    set_context(None)
    set_registry(None)


# ---------------------------------------------------------------------------
# Global accessors
# ---------------------------------------------------------------------------


class TestAccessors:
    def test_uninitialised_context_raises(self):
        set_context(None)
        with pytest.raises(RuntimeError, match="not initialized"):
            get_context()

    def test_uninitialised_registry_raises(self):
        set_registry(None)
        with pytest.raises(RuntimeError, match="not initialized"):
            get_registry()


# ---------------------------------------------------------------------------
# Registration and routing
# ---------------------------------------------------------------------------


class TestRouting:
    async def test_tools_registered(self, initialised):
        tools = await handle_list_tools()

        assert [t.name for t in tools] == ["ping", "publish_sync", "publish_file"]

    async def test_ping(self, initialised):
        result = await handle_call_tool("ping", {})

        text = result.content[0].text
        assert result.isError is not True
        assert "connected to octo/site" in text
        assert "Publishing to main:content" in text
        assert str(initialised.source.root) in text

    async def test_ping_connection_failure(self, initialised):
        initialised.client.fail(
            "get_repository",
            RemoteUnavailable("GitHub API returned 401", status_code=401),
        )

        result = await handle_call_tool("ping", {})

        assert result.isError is True
        assert "Error (remote_unavailable)" in result.content[0].text

    async def test_publish_sync_routed(self, initialised):
        result = await handle_call_tool("publish_sync", {"dry_run": True})

        assert result.structuredContent["mode"] == "sync"
        assert [c["path"] for c in result.structuredContent["changes"]] == [
            "a.md"
        ]

    async def test_unknown_tool(self, initialised):
        result = await handle_call_tool("wiki_get", {})

        assert result.isError is True
        assert "Error (unknown_tool): Unknown tool: wiki_get" in (
            result.content[0].text
        )


# ---------------------------------------------------------------------------
# CLI
# ---------------------------------------------------------------------------


class TestParser:
    def test_defaults(self):
        args = build_parser().parse_args([])

        assert args.token is None
        assert args.vault is None
        assert args.log_file == DEFAULT_MCP_LOG_FILE
        assert args.init_config is False

    def test_overrides(self):
        args = build_parser().parse_args(
            [
                "--owner", "octo",
                "--repo", "site",
                "--api-url", "https://ghe.example.com/api/v3",
                "--vault", "~/Notes",
            ]
        )

        assert args.owner == "octo"
        assert args.repo == "site"
        assert args.api_url == "https://ghe.example.com/api/v3"
        assert args.vault == "~/Notes"

    def test_version(self, capsys):
        with pytest.raises(SystemExit) as exc_info:
            build_parser().parse_args(["--version"])

        assert exc_info.value.code == 0
        assert __version__ in capsys.readouterr().out


class TestRun:
    def test_init_config_writes_starter_file(self, tmp_path, monkeypatch):
        target = tmp_path / ".vault_publisher" / "config.yml"
        monkeypatch.setattr("sys.argv", ["vault-publisher", "--init-config"])

        with (
            patch.object(server, "ensure_config", return_value=target) as ensure,
            patch.object(server, "main") as main,
        ):
            server.run()

        ensure.assert_called_once_with()
        main.assert_not_called()

    def test_overrides_passed_to_main(self, monkeypatch):
        monkeypatch.setattr(
            "sys.argv",
            ["vault-publisher", "--owner", "octo", "--vault", "/notes"],
        )
        captured = {}

        async def _fake_main(config_overrides=None):
            captured.update(config_overrides)

        with patch.object(server, "main", _fake_main):
            server.run()

        assert captured == {
            "owner": "octo",
            "vault": "/notes",
            "log_file": DEFAULT_MCP_LOG_FILE,
        }

    def test_startup_failure_exits_nonzero(self, monkeypatch):
        monkeypatch.setattr("sys.argv", ["vault-publisher"])

        async def _failing_main(config_overrides=None):
            raise RuntimeError("Configuration error")

        with patch.object(server, "main", _failing_main):
            with pytest.raises(SystemExit) as exc_info:
                server.run()

        assert exc_info.value.code == 1
