"""Tests for choosing the content backend from settings."""

from pathlib import Path

import pytest

from lexsync.content_store import ContentStore, LocalFileBackend, RevisionedBackend
from lexsync.content_store.config import (
    create_content_store,
    resolve_backend_name,
    select_backend,
)
from lexsync.content_store.revisioned import GitHubFileStore, RedisFileStore
from lexsync.core.config import Settings

GITHUB = {
    "GITHUB_TOKEN": "t",
    "GITHUB_REPO_OWNER": "owner",
    "GITHUB_REPO_NAME": "repo",
}


@pytest.fixture(autouse=True)
def clean_backend_env(monkeypatch: pytest.MonkeyPatch) -> None:
    """Keep developer credentials out of backend probing."""
    for name in ("CONTENT_BACKEND", "CONTENT_REDIS_URL", "TEST_CONTENT_FILE_PATH", *GITHUB):
        monkeypatch.delenv(name, raising=False)


class TestResolveBackendName:
    """Test environment probing for the backend kind."""

    def test_should_fall_back_to_file(self):
        assert resolve_backend_name(Settings()) == "file"

    def test_should_prefer_github_when_configured(self):
        settings = Settings(CONTENT_REDIS_URL="redis://localhost:6379/1", **GITHUB)

        assert resolve_backend_name(settings) == "github"

    def test_should_pick_redis_when_url_is_set(self):
        settings = Settings(CONTENT_REDIS_URL="redis://localhost:6379/1")

        assert resolve_backend_name(settings) == "redis"

    def test_should_honour_explicit_choice(self):
        settings = Settings(CONTENT_BACKEND="file", **GITHUB)

        assert resolve_backend_name(settings) == "file"


class TestSelectBackend:
    """Test backend construction."""

    def test_should_build_local_file_backend(self, tmp_path: Path):
        settings = Settings(CONTENT_BACKEND="file", CONTENT_FILE_PATH=str(tmp_path / "c.json"))

        backend = select_backend(settings)

        assert isinstance(backend, LocalFileBackend)
        # Test runs write next to a test_ prefixed file
        assert backend.path.name == "test_c.json"

    def test_should_build_github_backend(self):
        backend = select_backend(Settings(CONTENT_BACKEND="github", **GITHUB))

        assert isinstance(backend, RevisionedBackend)
        assert isinstance(backend.files, GitHubFileStore)

    def test_should_build_redis_backend(self):
        backend = select_backend(
            Settings(CONTENT_BACKEND="redis", CONTENT_REDIS_URL="redis://localhost:6379/1")
        )

        assert isinstance(backend, RevisionedBackend)
        assert isinstance(backend.files, RedisFileStore)

    def test_should_reject_github_without_credentials(self):
        with pytest.raises(ValueError):
            select_backend(Settings(CONTENT_BACKEND="github"))

    def test_should_reject_redis_without_url(self):
        with pytest.raises(ValueError):
            select_backend(Settings(CONTENT_BACKEND="redis"))

    def test_should_pass_retry_settings_to_store(self):
        store = create_content_store(
            Settings(
                CONTENT_BACKEND="file",
                STORE_CONFLICT_RETRIES=7,
                STORE_CONFLICT_BASE_DELAY=0.5,
            )
        )

        assert isinstance(store, ContentStore)
        assert store.conflict_retries == 7
        assert store.conflict_base_delay == 0.5
