import os

import pytest

from wiki_chain.config import MAX_TITLES_PER_REQUEST, SearchConfig
from wiki_chain.exceptions import InvalidConfigError

pytestmark = pytest.mark.unit

ENV_VARS = [
    "WIKI_CHAIN_MAX_DEPTH", "WIKI_CHAIN_MAX_NODES", "WIKI_CHAIN_BATCH_SIZE",
    "WIKI_CHAIN_MAX_RETRIES", "WIKI_CHAIN_INCLUDE_INFOBOX", "WIKI_CHAIN_INCLUDE_NAVBOX",
    "WIKI_CHAIN_LANGUAGE", "WIKI_CHAIN_PAGE_DELAY", "WIKI_CHAIN_REQUEST_TIMEOUT",
    "WIKI_CHAIN_USER_AGENT",
]


@pytest.fixture
def clean_env(monkeypatch, tmp_path):
    """Isolate from the developer's environment and any .env file."""
    for name in ENV_VARS:
        monkeypatch.delenv(name, raising=False)
    monkeypatch.chdir(tmp_path)
    return monkeypatch


def test_defaults():
    config = SearchConfig()

    assert config.max_depth == 6
    assert config.max_nodes == 2000
    assert config.batch_size == MAX_TITLES_PER_REQUEST
    assert config.max_retries == 50
    assert config.language == "en"
    assert config.link_options.includes_all is True
    assert config.blacklist == set()


def test_from_env_defaults(clean_env):
    assert SearchConfig.from_env() == SearchConfig()


def test_from_env_reads_variables(clean_env):
    clean_env.setenv("WIKI_CHAIN_MAX_DEPTH", "3")
    clean_env.setenv("WIKI_CHAIN_MAX_NODES", "100")
    clean_env.setenv("WIKI_CHAIN_MAX_RETRIES", "none")
    clean_env.setenv("WIKI_CHAIN_INCLUDE_NAVBOX", "false")
    clean_env.setenv("WIKI_CHAIN_LANGUAGE", "de")

    config = SearchConfig.from_env()

    assert config.max_depth == 3
    assert config.max_nodes == 100
    assert config.max_retries is None
    assert config.include_navbox_links is False
    assert config.link_options.includes_all is False
    assert config.language == "de"


def test_overrides_win_over_environment(clean_env):
    clean_env.setenv("WIKI_CHAIN_MAX_DEPTH", "3")

    config = SearchConfig.from_env(max_depth=8, max_nodes=None)

    assert config.max_depth == 8
    assert config.max_nodes == 2000


def test_from_env_reads_dotenv_file(clean_env, tmp_path):
    (tmp_path / ".env").write_text("WIKI_CHAIN_MAX_NODES=42\n")

    try:
        assert SearchConfig.from_env().max_nodes == 42
    finally:
        # load_dotenv writes straight into os.environ
        os.environ.pop("WIKI_CHAIN_MAX_NODES", None)


@pytest.mark.parametrize("name,value", [
    ("WIKI_CHAIN_MAX_NODES", "0"),
    ("WIKI_CHAIN_MAX_DEPTH", "-1"),
    ("WIKI_CHAIN_BATCH_SIZE", "many"),
])
def test_invalid_values_raise(clean_env, name, value):
    clean_env.setenv(name, value)

    with pytest.raises(InvalidConfigError):
        SearchConfig.from_env()
