import pytest

from agent_gateway.config import DEFAULT_PROMOTION_WHITELIST, load_settings


@pytest.fixture
def clean_env(tmp_path, monkeypatch):
    # 避免读到仓库根目录的 .env
    monkeypatch.chdir(tmp_path)
    for name in (
        "DATABASE_URL",
        "LOG_DIR",
        "LOG_LEVEL",
        "MAX_CONCURRENT_TOOL_CALLS",
        "AUDIT_REQUIRED",
        "PROMOTION_WHITELIST",
    ):
        monkeypatch.delenv(name, raising=False)
    return monkeypatch


def test_defaults(clean_env):
    settings = load_settings()

    assert settings.max_concurrent_tool_calls == 4
    assert settings.audit_required is False
    assert settings.promotion_whitelist == DEFAULT_PROMOTION_WHITELIST


def test_environment_overrides(clean_env):
    clean_env.setenv("MAX_CONCURRENT_TOOL_CALLS", "2")
    clean_env.setenv("AUDIT_REQUIRED", "true")
    clean_env.setenv("PROMOTION_WHITELIST", '{"save_order_draft": ["savedOrderRequestId"]}')

    settings = load_settings()

    assert settings.max_concurrent_tool_calls == 2
    assert settings.audit_required is True
    assert settings.promotion_whitelist == {"save_order_draft": ["savedOrderRequestId"]}


def test_invalid_whitelist_fails_loudly(clean_env):
    clean_env.setenv("PROMOTION_WHITELIST", "save_order_draft=savedOrderRequestId")

    with pytest.raises(RuntimeError):
        load_settings()


def test_concurrency_limit_must_be_positive(clean_env):
    clean_env.setenv("MAX_CONCURRENT_TOOL_CALLS", "0")

    with pytest.raises(ValueError):
        load_settings()
