from __future__ import annotations

from pathlib import Path

import pytest

from markup_builder.core.config import Settings, _load_settings_overrides
from markup_builder.core.exceptions import ProviderError
from markup_builder.core.json_utils import parse_json_response


def test_overrides_read_provider_and_markup_sections(tmp_path: Path) -> None:
    secrets = tmp_path / "secrets.toml"
    secrets.write_text(
        """
[workspace]
url = "https://bridge.example.com/mcp"
service_name = "viewer"
authorization = "Bearer abc123"
timeout = "12.5"

[workspace.tools]
selection = "viewer_get_selection"

[markup]
default_separator = " / "
max_concurrency = 4
unknown_option = true
""",
        encoding="utf-8",
    )

    overrides = _load_settings_overrides(secrets)
    settings = Settings(**overrides)

    assert overrides["provider_api_key"] == "abc123"
    assert "unknown_option" not in overrides
    assert str(settings.provider_base_url) == "https://bridge.example.com/mcp"
    assert settings.request_timeout == 12.5
    assert settings.default_separator == " / "
    assert settings.max_concurrency == 4
    assert settings.provider_tool_overrides == {"selection": "viewer_get_selection"}
    assert settings.mcp_service_configs() == {
        "viewer": {
            "transport": "streamable_http",
            "url": "https://bridge.example.com/mcp",
            "headers": {"Authorization": "Bearer abc123"},
            "timeout": 12.5,
        }
    }


def test_missing_secrets_file_yields_no_overrides(tmp_path: Path) -> None:
    assert _load_settings_overrides(tmp_path / "absent.toml") == {}


def test_settings_read_environment(monkeypatch) -> None:
    monkeypatch.setenv("MARKUP_SUMMARY_SUFFIX", " pcs")
    monkeypatch.setenv("MARKUP_POINT_MARKUPS", "false")

    settings = Settings()

    assert settings.summary_suffix == " pcs"
    assert settings.point_markups is False
    assert "headers" not in settings.provider_mcp_config()


def test_parse_json_response_tolerates_code_fences() -> None:
    assert parse_json_response('```json\n{"a": 1}\n```') == {"a": 1}
    assert parse_json_response(" [1, 2] ") == [1, 2]
    with pytest.raises(ProviderError):
        parse_json_response("not json")
