"""
推理服务客户端：通过 OpenAI Responses 接口（computer_use_preview 工具）驱动下单助手

start_session 开启会话（用户指令 + 首张截图），continue_session 用上一轮 id 续接，
只回传上一个动作的结果（新截图、当前 URL、已确认的安全检查）。
"""
import logging
from typing import Any, Dict, Iterable, List, Optional

import httpx
from openai import AsyncOpenAI

from app.core.config import settings
from app.core.exceptions import ConfigurationError
from app.services.order_actions import parse_action
from app.services.order_types import AgentTurn, ComputerCall, PendingSafetyCheck

logger = logging.getLogger(__name__)


def _as_dict(obj: Any) -> Dict[str, Any]:
    """SDK 返回 pydantic 对象，测试中可能是 dict，统一转为 dict。"""
    if obj is None:
        return {}
    if isinstance(obj, dict):
        return obj
    if hasattr(obj, "model_dump"):
        return obj.model_dump()
    return dict(vars(obj))


def _image_url(screenshot_b64: str) -> str:
    return f"data:image/png;base64,{screenshot_b64}"


def parse_turn(response: Any) -> AgentTurn:
    """把 Responses 结果解析为 AgentTurn；只保留 computer_call，忽略 reasoning/message 等条目。"""
    calls: List[ComputerCall] = []
    for item in getattr(response, "output", None) or []:
        data = _as_dict(item)
        if data.get("type") != "computer_call":
            continue
        # 没有 id 的安全检查无法被确认，丢弃；code/message 缺失时保持 None 原样回传
        checks = tuple(
            PendingSafetyCheck(id=str(c["id"]), code=c.get("code"), message=c.get("message"))
            for c in (_as_dict(x) for x in data.get("pending_safety_checks") or [])
            if c.get("id")
        )
        calls.append(ComputerCall(
            call_id=str(data.get("call_id", "")),
            action=parse_action(_as_dict(data.get("action"))),
            pending_safety_checks=checks,
        ))
    return AgentTurn(id=str(getattr(response, "id", "")), calls=tuple(calls))


class ComputerUseClient:
    """一次运行独占的推理服务会话"""

    def __init__(self, client: Optional[AsyncOpenAI] = None, http_client: Optional[httpx.AsyncClient] = None):
        if client is None:
            if not settings.OPENAI_API_KEY:
                raise ConfigurationError("Missing OPENAI_API_KEY")
            # 单次失败即终止运行，SDK 不做自动重试
            client = AsyncOpenAI(
                api_key=settings.OPENAI_API_KEY,
                base_url=settings.OPENAI_BASE_URL,
                max_retries=settings.ORDER_MAX_RETRIES,
                http_client=http_client,
            )
        self._client = client

    def _tools(self) -> List[Dict[str, Any]]:
        # 声明的动作空间：click/scroll/keypress/type/wait/screenshot，限定在固定视口内
        return [
            {
                "type": "computer_use_preview",
                "display_width": settings.ORDER_VIEWPORT_WIDTH,
                "display_height": settings.ORDER_VIEWPORT_HEIGHT,
                "environment": settings.ORDER_ENVIRONMENT,
            }
        ]

    async def start_session(self, prompt: str, screenshot_b64: str) -> AgentTurn:
        response = await self._client.responses.create(
            model=settings.ORDER_MODEL,
            tools=self._tools(),
            input=[
                {
                    "role": "user",
                    "content": [
                        {"type": "input_text", "text": prompt},
                        {"type": "input_image", "image_url": _image_url(screenshot_b64), "detail": "auto"},
                    ],
                }
            ],
            reasoning={"summary": settings.ORDER_REASONING_SUMMARY},
            truncation=settings.ORDER_TRUNCATION,
        )
        turn = parse_turn(response)
        logger.info("推理服务会话已开启 id=%s, 提议动作 %d 个", turn.id, len(turn.calls))
        return turn

    async def continue_session(
        self,
        previous_turn_id: str,
        call_id: str,
        screenshot_b64: str,
        acknowledged_checks: Iterable[PendingSafetyCheck],
        current_url: str,
    ) -> AgentTurn:
        response = await self._client.responses.create(
            model=settings.ORDER_MODEL,
            previous_response_id=previous_turn_id,
            tools=self._tools(),
            input=[
                {
                    "type": "computer_call_output",
                    "call_id": call_id,
                    "output": {"type": "computer_screenshot", "image_url": _image_url(screenshot_b64)},
                    "acknowledged_safety_checks": [c.to_dict() for c in acknowledged_checks],
                    "current_url": current_url,
                }
            ],
            truncation=settings.ORDER_TRUNCATION,
        )
        turn = parse_turn(response)
        logger.info("推理服务续接 id=%s -> %s, 提议动作 %d 个", previous_turn_id, turn.id, len(turn.calls))
        return turn
