from __future__ import annotations

from pathlib import Path

import pytest

from catalogsync.config import (
    ConfigurationError,
    MissingConfigurationError,
    StorageConfig,
    get_github_config,
    get_staging_uri,
    get_storage_config,
    optional_env_var,
    require_env_vars,
)


def test_require_env_vars_reports_every_missing_name(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("PRESENT_VAR", "value")
    monkeypatch.delenv("MISSING_A", raising=False)
    monkeypatch.setenv("MISSING_B", "   ")

    with pytest.raises(MissingConfigurationError) as exc:
        require_env_vars(["PRESENT_VAR", "MISSING_B", "MISSING_A"])

    assert "MISSING_A, MISSING_B" in str(exc.value)
    assert require_env_vars(["PRESENT_VAR"]) == {"PRESENT_VAR": "value"}


def test_optional_env_var_treats_blank_as_unset(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("BLANK_VAR", "  ")
    monkeypatch.setenv("PADDED_VAR", " x ")

    assert optional_env_var("BLANK_VAR", "fallback") == "fallback"
    assert optional_env_var("PADDED_VAR") == "x"


def test_github_config_from_environment(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("CATALOGSYNC_REPOSITORY", "acme/shop")
    monkeypatch.setenv("CATALOGSYNC_BRANCH", "catalog")
    monkeypatch.setenv("CATALOGSYNC_GITHUB_TOKEN", "secret")
    monkeypatch.delenv("CATALOGSYNC_API_URL", raising=False)

    config = get_github_config()

    assert (config.owner, config.repository, config.branch) == ("acme", "shop", "catalog")
    assert config.has_token
    assert config.resilience.base_url == "https://api.github.com"
    assert config.resilience.ratelimit is not None


def test_github_config_without_token_is_read_only(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("CATALOGSYNC_REPOSITORY", "acme/shop")
    monkeypatch.delenv("CATALOGSYNC_BRANCH", raising=False)
    monkeypatch.delenv("CATALOGSYNC_GITHUB_TOKEN", raising=False)

    config = get_github_config()

    assert config.branch == "main"
    assert not config.has_token


@pytest.mark.parametrize("repository", ["shop", "acme/", "acme/shop/extra"])
def test_github_config_rejects_malformed_repository(
    monkeypatch: pytest.MonkeyPatch, repository: str
) -> None:
    monkeypatch.setenv("CATALOGSYNC_REPOSITORY", repository)

    with pytest.raises(ConfigurationError):
        get_github_config()


def test_github_config_requires_repository(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.delenv("CATALOGSYNC_REPOSITORY", raising=False)

    with pytest.raises(MissingConfigurationError):
        get_github_config()


def test_storage_config_uses_data_dir(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    monkeypatch.setenv("CATALOGSYNC_DATA_DIR", str(tmp_path / "data"))
    monkeypatch.delenv("CATALOGSYNC_STAGING_URI", raising=False)

    config = get_storage_config()

    assert config.resolve_data_dir() == (tmp_path / "data").resolve()
    assert get_staging_uri() == f"sqlite+pysqlite:///{(tmp_path / 'data' / 'staging.db').resolve()}"
    assert (tmp_path / "data").is_dir()


def test_staging_uri_override(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("CATALOGSYNC_STAGING_URI", "sqlite+pysqlite:///:memory:")

    assert get_staging_uri(storage=StorageConfig(data_dir=Path("/unused"))) == (
        "sqlite+pysqlite:///:memory:"
    )
