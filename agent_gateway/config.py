'''运行配置：从环境变量（.env）读取，不在 import 时产生副作用
Settings 会被 run.py、测试和 TurnOrchestrator 使用'''
# agent_gateway/config.py
import json
import os
from typing import Dict, List

from dotenv import load_dotenv
from pydantic import BaseModel, Field

# deployment-time whitelist: tool name -> result fields carried into the next turn
DEFAULT_PROMOTION_WHITELIST: Dict[str, List[str]] = {
    "save_order_draft": ["savedOrderRequestId", "referencedOrderRequestId"],
    "summarize_order_requests": ["orderReport"],
}


class Settings(BaseModel):
    '''
    网关运行配置

    参数	说明
    database_url	SQLAlchemy 数据库 URL，审计与会话存储共用
    log_dir	日志目录
    log_level	日志级别
    max_concurrent_tool_calls	单轮内并发执行的工具调用上限
    audit_required	审计写入失败时是否让整个请求失败（合规部署）
    promotion_whitelist	每个工具允许晋升到下一轮上下文的结果字段
    '''
    database_url: str = "sqlite:///./agent_gateway.db"
    log_dir: str = "logs"
    log_level: str = "INFO"
    max_concurrent_tool_calls: int = Field(default=4, ge=1)
    audit_required: bool = False
    promotion_whitelist: Dict[str, List[str]] = Field(
        default_factory=lambda: {k: list(v) for k, v in DEFAULT_PROMOTION_WHITELIST.items()}
    )


def _env_bool(name: str, default: bool) -> bool:
    value = os.getenv(name)
    if value is None:
        return default
    return value.strip().lower() in ("1", "true", "yes", "on")


def load_settings() -> Settings:
    """Build Settings from the environment, loading a .env file first if present."""
    load_dotenv()

    whitelist_raw = os.getenv("PROMOTION_WHITELIST")
    overrides = {}
    if whitelist_raw:
        try:
            overrides["promotion_whitelist"] = json.loads(whitelist_raw)
        except json.JSONDecodeError as e:
            raise RuntimeError(f"PROMOTION_WHITELIST is not valid JSON: {e}") from e

    return Settings(
        database_url=os.getenv("DATABASE_URL", "sqlite:///./agent_gateway.db"),
        log_dir=os.getenv("LOG_DIR", "logs"),
        log_level=os.getenv("LOG_LEVEL", "INFO"),
        max_concurrent_tool_calls=int(os.getenv("MAX_CONCURRENT_TOOL_CALLS", 4)),
        audit_required=_env_bool("AUDIT_REQUIRED", False),
        **overrides,
    )
