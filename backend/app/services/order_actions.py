"""
下单助手动作：把推理服务返回的原始动作解析为动作类型，并在浏览器中执行
"""
import logging
from typing import Any, Dict, List, Optional

from app.core.config import settings
from app.services.order_types import (
    Action,
    ClickAction,
    KeypressAction,
    OtherAction,
    ScreenshotAction,
    ScrollAction,
    TypeAction,
    WaitAction,
)

logger = logging.getLogger(__name__)

# 推理服务的按键名 -> Playwright 鼠标按键
_BUTTON_MAP = {"wheel": "middle"}


def _coord(value: Any) -> Optional[int]:
    """坐标或滚动量转为整数；缺失或无法解析时返回 None。"""
    if value is None or isinstance(value, bool):
        return None
    try:
        return int(float(value))
    except (TypeError, ValueError):
        return None


def parse_action(raw: Dict[str, Any]) -> Action:
    """
    原始 dict -> 动作；未知类型返回 OtherAction，由执行阶段记录为未处理。
    click/scroll 的坐标缺失或无法解析时同样返回 OtherAction，不操作浏览器。
    """
    raw = raw or {}
    t = raw.get("type")
    if t == "click":
        x, y = _coord(raw.get("x")), _coord(raw.get("y"))
        if x is None or y is None:
            return OtherAction(raw=dict(raw))
        button = str(raw.get("button") or "left")
        return ClickAction(x=x, y=y, button=_BUTTON_MAP.get(button, button))
    if t == "scroll":
        x, y = _coord(raw.get("x")), _coord(raw.get("y"))
        dx = _coord(raw.get("scroll_x", raw.get("scrollX", 0)))
        dy = _coord(raw.get("scroll_y", raw.get("scrollY", 0)))
        if None in (x, y, dx, dy):
            return OtherAction(raw=dict(raw))
        return ScrollAction(x=x, y=y, delta_x=dx, delta_y=dy)
    if t == "keypress":
        return KeypressAction(keys=tuple(str(k) for k in raw.get("keys") or []))
    if t == "type":
        return TypeAction(text=str(raw.get("text") or ""))
    if t == "wait":
        return WaitAction()
    if t == "screenshot":
        return ScreenshotAction()
    return OtherAction(raw=dict(raw))


def map_key(token: str) -> str:
    """含 enter 的按键映射为 Enter，含 space 的映射为空格，其余原样传递。"""
    lowered = token.lower()
    if "enter" in lowered:
        return "Enter"
    if "space" in lowered:
        return " "
    return token


async def execute_action(session, action: Action, logs: List[str]) -> None:
    """在浏览器中执行一个动作；执行前把描述追加到运行日志（keypress 每个键一条）。"""
    if isinstance(action, ClickAction):
        logs.append(f"click ({action.x},{action.y}) {action.button}")
        await session.click(action.x, action.y, action.button)
    elif isinstance(action, ScrollAction):
        logs.append(f"scroll at ({action.x},{action.y}) by ({action.delta_x},{action.delta_y})")
        await session.move(action.x, action.y)
        await session.scroll_by(action.delta_x, action.delta_y)
    elif isinstance(action, KeypressAction):
        for key in action.keys:
            logs.append(f"keypress {key}")
            await session.press(map_key(key))
    elif isinstance(action, TypeAction):
        # 只记录前 N 个字符，避免把长文本（可能含敏感信息）写进日志
        logs.append(f"type '{action.text[:settings.ORDER_TYPE_LOG_MAX_CHARS]}'")
        await session.type_text(action.text)
    elif isinstance(action, WaitAction):
        logs.append("wait")
        await session.pause(settings.ORDER_WAIT_ACTION_MS)
    elif isinstance(action, ScreenshotAction):
        # 每轮都会截图，这里无需额外操作
        logs.append("screenshot")
    else:
        logger.warning("未处理的动作类型: %s", action.type)
        logs.append(f"unhandled action {action.type}")
