# agent_gateway/logger.py
import logging
from logging.handlers import RotatingFileHandler
import os

ALERT_LOGGER_NAME = "agent_gateway.alerts"


def get_logger(name: str) -> logging.Logger:
    logger = logging.getLogger(name)

    if logger.handlers:
        return logger  # 防止重复添加 handler

    log_dir = os.getenv("LOG_DIR", "logs")
    os.makedirs(log_dir, exist_ok=True)

    logger.setLevel(os.getenv("LOG_LEVEL", "INFO").upper())

    formatter = logging.Formatter(
        "[%(asctime)s] [%(levelname)s] [%(name)s] %(message)s"
    )

    # 控制台输出
    console_handler = logging.StreamHandler()
    console_handler.setFormatter(formatter)

    # 文件输出（滚动）
    file_handler = RotatingFileHandler(
        os.path.join(log_dir, "agent_gateway.log"),
        maxBytes=10 * 1024 * 1024,
        backupCount=5,
        encoding="utf-8",
    )
    file_handler.setFormatter(formatter)

    logger.addHandler(console_handler)
    logger.addHandler(file_handler)

    return logger


def get_alert_logger() -> logging.Logger:
    '''
    Logger for conditions that must reach operational alerting
    (audit write failures). Never used for model-facing text.
    '''
    return get_logger(ALERT_LOGGER_NAME)
