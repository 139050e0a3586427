import pytest

from commit_explainer.config import loader


ENV_VARS = (
    loader.ENV_MODEL,
    loader.ENV_BASE_URL,
    loader.ENV_API_KEY,
    loader.ENV_TEMPERATURE,
    loader.ENV_AUTO_START,
)


@pytest.fixture(autouse=True)
def isolate_user_config(tmp_path, monkeypatch):
    """Keep the user's real configuration file and environment out of tests."""
    config_dir = tmp_path / "explain_commit_home"
    monkeypatch.setattr(loader, "_get_config_directory", lambda: config_dir)
    for name in ENV_VARS:
        monkeypatch.delenv(name, raising=False)
    yield config_dir
