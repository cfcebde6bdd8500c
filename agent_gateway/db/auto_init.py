"""
数据库自动初始化检查模块
在应用启动时自动检查并执行必要的初始化步骤
"""
from sqlalchemy import inspect
from agent_gateway.db.session import get_engine
from agent_gateway.db.init_db import init_db
from agent_gateway.logger import get_logger

logger = get_logger(__name__)

REQUIRED_TABLES = ("run_steps", "chat_messages", "order_requests")


def check_tables_exist() -> bool:
    """检查数据库表是否存在"""
    engine = get_engine()
    tables = set(inspect(engine).get_table_names())
    return all(name in tables for name in REQUIRED_TABLES)


def auto_init():
    """
    自动初始化检查
    如果数据库未初始化，自动建表
    """
    if check_tables_exist():
        logger.info("Database tables already exist.")
        return

    logger.info("Database tables missing, creating...")
    try:
        init_db()
    except Exception:
        logger.exception("Database table creation failed.")
        raise
    logger.info("Database tables created.")


if __name__ == "__main__":
    auto_init()
