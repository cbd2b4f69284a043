"""Tests for YAML configuration loading."""

import pytest

from autoupdate.config import (
    CONFIG_ENV_VAR,
    Config,
    ConfigError,
    ProviderConfig,
    find_config_file,
    load_config,
    resolve_token,
)

VALID_YAML = """\
providers:
  - type: github
    token: ${TEST_AUTOUPDATE_TOKEN}
    organizations:
      - acme
      - acme-infra
  - type: gitlab
    token: glpat-inline
    base_url: https://gitlab.example.com/api/v4
    organizations: platform
updaters:
  terraform:
    enabled: true
    auto_complete: true
    target_branch: develop
"""


@pytest.fixture
def config_file(tmp_path, monkeypatch):
    monkeypatch.setenv("TEST_AUTOUPDATE_TOKEN", "ghp-secret")
    path = tmp_path / "autoupdate.yaml"
    path.write_text(VALID_YAML)
    return path


class TestLoadConfig:
    def test_loads_providers_and_updaters(self, config_file):
        config = load_config(config_file)

        assert config.path == config_file
        github, gitlab = config.providers
        assert github.type == "github"
        assert github.token == "ghp-secret"
        assert github.organizations == ["acme", "acme-infra"]
        assert github.base_url == ""
        assert gitlab.token == "glpat-inline"
        assert gitlab.organizations == ["platform"]
        assert gitlab.base_url == "https://gitlab.example.com/api/v4"

        terraform = config.updater("terraform")
        assert terraform.enabled is True
        assert terraform.auto_complete is True
        assert terraform.target_branch == "develop"

    def test_missing_file(self, tmp_path):
        with pytest.raises(ConfigError, match="failed to read"):
            load_config(tmp_path / "missing.yaml")

    def test_invalid_yaml(self, tmp_path):
        path = tmp_path / "bad.yaml"
        path.write_text("providers: [unclosed\n")
        with pytest.raises(ConfigError, match="failed to parse"):
            load_config(path)

    def test_not_a_mapping(self, tmp_path):
        path = tmp_path / "list.yaml"
        path.write_text("- one\n- two\n")
        with pytest.raises(ConfigError, match="mapping"):
            load_config(path)

    def test_empty_file_fails_validation(self, tmp_path):
        path = tmp_path / "empty.yaml"
        path.write_text("")
        with pytest.raises(ConfigError, match="at least one provider"):
            load_config(path)

    def test_unset_env_token_fails_validation(self, tmp_path, monkeypatch):
        monkeypatch.delenv("TEST_AUTOUPDATE_MISSING", raising=False)
        path = tmp_path / "c.yaml"
        path.write_text(
            "providers:\n  - type: github\n    token: ${TEST_AUTOUPDATE_MISSING}\n"
            "    organizations: [acme]\n"
        )
        with pytest.raises(ConfigError, match=r"providers\[0\].token is required"):
            load_config(path)


class TestValidate:
    def test_requires_type(self):
        config = Config(providers=[ProviderConfig(type="", token="t", organizations=["a"])])
        with pytest.raises(ConfigError, match=r"providers\[0\].type"):
            config.validate()

    def test_requires_organizations(self):
        config = Config(providers=[ProviderConfig(type="github", token="t")])
        with pytest.raises(ConfigError, match="organizations"):
            config.validate()

    def test_providers_must_be_list(self):
        with pytest.raises(ConfigError, match="'providers' must be a list"):
            Config.from_dict({"providers": {"type": "github"}})

    def test_unknown_updater_defaults_enabled(self):
        config = Config.from_dict({"updaters": {"terraform": {"enabled": False}}})
        assert config.updater("terraform").enabled is False
        assert config.updater("helm").enabled is True


class TestResolveToken:
    def test_plain_value(self):
        assert resolve_token("ghp-plain") == "ghp-plain"

    def test_env_expansion(self, monkeypatch):
        monkeypatch.setenv("TEST_AUTOUPDATE_TOKEN", "abc")
        assert resolve_token("${TEST_AUTOUPDATE_TOKEN}") == "abc"

    def test_unset_env_is_empty(self, monkeypatch, caplog):
        monkeypatch.delenv("TEST_AUTOUPDATE_MISSING", raising=False)
        assert resolve_token("${TEST_AUTOUPDATE_MISSING}") == ""
        assert "TEST_AUTOUPDATE_MISSING" in caplog.text

    def test_token_file(self, tmp_path):
        token_file = tmp_path / "token"
        token_file.write_text("from-file\n")
        assert resolve_token(str(token_file)) == "from-file"

    def test_env_names_token_file(self, tmp_path, monkeypatch):
        token_file = tmp_path / "token"
        token_file.write_text("  via-env-file  ")
        monkeypatch.setenv("TEST_AUTOUPDATE_TOKEN_FILE", str(token_file))
        assert resolve_token("${TEST_AUTOUPDATE_TOKEN_FILE}") == "via-env-file"


class TestFindConfigFile:
    def test_env_var_wins(self, tmp_path, monkeypatch):
        monkeypatch.setenv(CONFIG_ENV_VAR, str(tmp_path / "custom.yaml"))
        assert find_config_file() == tmp_path / "custom.yaml"

    def test_current_directory(self, tmp_path, monkeypatch):
        monkeypatch.delenv(CONFIG_ENV_VAR, raising=False)
        monkeypatch.chdir(tmp_path)
        (tmp_path / ".autoupdate.yaml").write_text("providers: []\n")
        assert find_config_file().resolve() == (tmp_path / ".autoupdate.yaml").resolve()

    def test_not_found(self, tmp_path, monkeypatch):
        monkeypatch.delenv(CONFIG_ENV_VAR, raising=False)
        monkeypatch.delenv("XDG_CONFIG_HOME", raising=False)
        monkeypatch.chdir(tmp_path)
        monkeypatch.setenv("HOME", str(tmp_path / "home"))
        with pytest.raises(ConfigError, match="not found"):
            find_config_file()
