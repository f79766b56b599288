"""Unit tests for configuration loading."""

from pathlib import Path

import pytest

from changelog_generator.config import (
    ChangelogConfig,
    find_config_file,
    load_config,
    load_config_from_dict,
    substitute_env_vars,
)
from changelog_generator.models import FIX


@pytest.fixture(autouse=True)
def no_token_env(monkeypatch) -> None:
    monkeypatch.delenv("GITHUB_TOKEN", raising=False)


class TestChangelogConfig:
    """Tests for ChangelogConfig defaults and validation."""

    def test_defaults(self) -> None:
        config = ChangelogConfig()

        assert config.token is None
        assert config.count == 5
        assert config.list_limit == 100
        assert config.max_workers == 1
        assert config.format == "markdown"
        assert config.rules is None
        assert config.anchor_to_origin is False

    def test_token_from_environment(self, monkeypatch) -> None:
        monkeypatch.setenv("GITHUB_TOKEN", "env-token")
        assert ChangelogConfig().token == "env-token"

    def test_explicit_token_wins(self, monkeypatch) -> None:
        monkeypatch.setenv("GITHUB_TOKEN", "env-token")
        assert ChangelogConfig(token="cli").token == "cli"

    @pytest.mark.parametrize(
        "kwargs",
        [
            {"format": "html"},
            {"count": 0},
            {"list_limit": 101},
            {"max_workers": 0},
            {"timeout": 0},
        ],
    )
    def test_invalid_values(self, kwargs) -> None:
        with pytest.raises(ValueError):
            ChangelogConfig(**kwargs)


class TestSubstituteEnvVars:
    """Tests for ${VAR} substitution."""

    def test_nested(self, monkeypatch) -> None:
        monkeypatch.setenv("MY_TOKEN", "abc")
        data = {"github": {"token": "${MY_TOKEN}"}, "list": ["x-${MY_TOKEN}"], "n": 3}

        assert substitute_env_vars(data) == {"github": {"token": "abc"}, "list": ["x-abc"], "n": 3}

    def test_missing_variable(self, monkeypatch) -> None:
        monkeypatch.delenv("NOPE_NOT_SET", raising=False)
        with pytest.raises(ValueError, match="NOPE_NOT_SET"):
            substitute_env_vars("${NOPE_NOT_SET}")

    def test_missing_variable_lenient(self, monkeypatch) -> None:
        monkeypatch.delenv("NOPE_NOT_SET", raising=False)
        assert substitute_env_vars({"token": "${NOPE_NOT_SET}"}, strict=False) == {"token": None}


class TestLoadConfig:
    """Tests for loading config files."""

    def test_from_dict(self, monkeypatch) -> None:
        monkeypatch.setenv("MY_TOKEN", "abc")
        config = load_config_from_dict({
            "github": {"token": "${MY_TOKEN}", "base_url": "https://ghe.example.com/api/v3", "timeout": 30},
            "changelog": {"count": 10, "max_workers": 4, "anchor_to_origin": True},
            "output": {"path": "CHANGES.md", "format": "json"},
            "rules": [{"category": "fix", "title_prefixes": ["hotfix"]}],
        })

        assert config.token == "abc"
        assert config.base_url == "https://ghe.example.com/api/v3"
        assert config.timeout == 30
        assert config.retries == 3
        assert config.count == 10
        assert config.max_workers == 4
        assert config.anchor_to_origin is True
        assert config.output == "CHANGES.md"
        assert config.format == "json"
        assert [r.category for r in config.rules] == [FIX]

    def test_unset_token_variable_is_optional(self) -> None:
        config = load_config_from_dict({"github": {"token": "${GITHUB_TOKEN}"}})
        assert config.token is None

    def test_unset_variable_outside_token_fails(self, monkeypatch) -> None:
        monkeypatch.delenv("NOPE_NOT_SET", raising=False)
        with pytest.raises(ValueError, match="NOPE_NOT_SET"):
            load_config_from_dict({"github": {"base_url": "${NOPE_NOT_SET}"}})

    @pytest.mark.parametrize("key", ["latest", "anchor_to_origin"])
    def test_flags_must_be_booleans(self, key) -> None:
        with pytest.raises(ValueError, match=key):
            load_config_from_dict({"changelog": {key: "false"}})

    def test_quoted_false_in_file_is_rejected(self, tmp_path: Path) -> None:
        path = tmp_path / "custom.yaml"
        path.write_text('changelog:\n  latest: "false"\n')

        with pytest.raises(ValueError, match="latest"):
            load_config(path)

    def test_from_file(self, tmp_path: Path) -> None:
        path = tmp_path / "custom.yaml"
        path.write_text("changelog:\n  count: 2\n  latest: true\n")

        config = load_config(path)

        assert config.count == 2
        assert config.latest is True
        assert config.config_path == path

    def test_missing_file(self, tmp_path: Path) -> None:
        with pytest.raises(FileNotFoundError):
            load_config(tmp_path / "missing.yaml")

    def test_discovery(self, tmp_path: Path, monkeypatch) -> None:
        (tmp_path / "changelog.yaml").write_text("output:\n  format: json\n")
        monkeypatch.chdir(tmp_path)

        assert find_config_file() == (tmp_path / "changelog.yaml").resolve()
        assert load_config().format == "json"

    def test_hidden_file_preferred(self, tmp_path: Path) -> None:
        (tmp_path / "changelog.yaml").write_text("{}")
        (tmp_path / ".changelog.yaml").write_text("{}")

        assert find_config_file(tmp_path).name == ".changelog.yaml"

    def test_no_file(self, tmp_path: Path, monkeypatch) -> None:
        monkeypatch.chdir(tmp_path)
        assert load_config() == ChangelogConfig()

    def test_non_mapping_file(self, tmp_path: Path) -> None:
        path = tmp_path / "bad.yaml"
        path.write_text("- just\n- a list\n")

        with pytest.raises(ValueError):
            load_config(path)
