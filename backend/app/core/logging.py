"""
日志配置：控制台 + 按大小滚动的文件日志
"""
import logging
import sys
from logging.handlers import RotatingFileHandler

from app.core.config import settings

LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"

# 第三方库日志过于冗长，统一提到 WARNING
_NOISY_LOGGERS = ("httpx", "httpcore", "openai", "asyncio")


def setup_logging() -> None:
    """初始化根日志器；重复调用不会重复添加 handler。"""
    root = logging.getLogger()
    level = getattr(logging, str(settings.LOG_LEVEL).upper(), logging.INFO)
    root.setLevel(level)

    if getattr(root, "_order_assistant_configured", False):
        return

    formatter = logging.Formatter(LOG_FORMAT)

    console = logging.StreamHandler(sys.stdout)
    console.setFormatter(formatter)
    root.addHandler(console)

    try:
        settings.LOG_FILE.parent.mkdir(parents=True, exist_ok=True)
        file_handler = RotatingFileHandler(
            settings.LOG_FILE,
            maxBytes=10 * 1024 * 1024,
            backupCount=5,
            encoding="utf-8",
        )
        file_handler.setFormatter(formatter)
        root.addHandler(file_handler)
    except OSError as e:
        # 只读文件系统等情况下仅输出到控制台
        root.warning("日志文件不可写，仅输出到控制台: %s", e)

    for name in _NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)

    root._order_assistant_configured = True  # type: ignore[attr-defined]
