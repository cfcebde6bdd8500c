# run.py
"""
run.py
本地演示脚本：初始化数据库，跑一轮包含两个工具调用的回合，
打印返回给模型的 function_call_output 和晋升到下一轮的上下文
"""
import json
import os

from agent_gateway.agentic.main import build_orchestrator
from agent_gateway.agentic.schemas.tool_call import ToolCallEnvelope
from agent_gateway.config import load_settings
from agent_gateway.db.auto_init import auto_init
from agent_gateway.db.session import get_session, reset_engine
from agent_gateway.services.conversation_service import ConversationService


def configure_database(settings):
    """
    统一数据库路径：环境变量优先，否则使用 Settings 默认值
    """
    os.environ.setdefault("DATABASE_URL", settings.database_url)
    reset_engine()
    print(f"📦 Using database: {os.environ['DATABASE_URL']}")


def main():
    settings = load_settings()

    # 0️ 统一数据库路径
    configure_database(settings)

    # 1️ 启动前初始化数据库
    auto_init()

    # 2️ 装配回合驱动器
    orch = build_orchestrator("demo-conversation", settings)

    # 3️ 一轮：用户消息 + 模型下发的两个工具调用
    orch.record_user_message("Please order 3 each of A1, then tell me what I have drafted.")
    outputs = orch.run_tool_calls([
        ToolCallEnvelope(
            call_id="c1",
            tool_name="save_order_draft",
            raw_arguments=json.dumps({
                "itemNum": "A1", "quantity": 3, "packSize": None,
                "uom": "EA", "status": "draft", "confidence": "high",
            }),
        ),
        ToolCallEnvelope(
            call_id="c2",
            tool_name="delete_everything",
            raw_arguments="{}",
        ),
    ])
    for output in outputs:
        print(output.model_dump_json())

    # 4️ 落库 assistant 消息并 flush 上下文
    message = orch.complete_turn("Your draft for A1 is saved.")
    db = get_session()
    try:
        data = ConversationService(db).get_additional_data(message.id)
        print("derived context:", data.derived.model_dump(by_alias=True, exclude_none=True))
    finally:
        db.close()


if __name__ == "__main__":
    main()
