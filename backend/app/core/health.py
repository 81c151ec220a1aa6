"""
健康检查：推理服务凭据、Playwright 可用性
"""
import importlib.util
import logging
from typing import Tuple

from app.core.config import settings

logger = logging.getLogger(__name__)


def check_openai() -> Tuple[bool, str]:
    """检查推理服务凭据是否已配置（不发起网络请求）"""
    if not getattr(settings, "OPENAI_API_KEY", None) or not settings.OPENAI_API_KEY.strip():
        return False, "OPENAI_API_KEY 未配置"
    return True, "ok"


def check_playwright() -> Tuple[bool, str]:
    """检查 playwright 是否已安装"""
    try:
        if importlib.util.find_spec("playwright") is None:
            return False, "未安装 playwright"
        return True, "ok"
    except Exception as e:
        logger.warning("健康检查 playwright 失败: %s", e)
        return False, str(e)
