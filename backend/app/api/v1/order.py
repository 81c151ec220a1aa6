"""
下单助手 API：视觉模型 + Playwright，在用户监督下代为完成网页任务（如下单）
"""
import logging
from typing import Optional, Tuple

from fastapi import APIRouter
from fastapi.responses import JSONResponse

from app.schemas.order import OrderStartRequest, OrderStartResponse, SafetyCheckItem
from app.services.order_agent import build_run_request, run_order
from app.services.order_types import ErrorKind, RunResult, RunStatus

router = APIRouter()
logger = logging.getLogger(__name__)

# 错误类型 -> HTTP 状态码
_ERROR_HTTP_STATUS = {
    ErrorKind.INVALID_REQUEST: 400,
    ErrorKind.CONFIGURATION: 500,
    ErrorKind.RUN: 500,
}


def to_response(result: RunResult) -> Tuple[int, OrderStartResponse]:
    """RunResult -> (HTTP 状态码, 响应体)；每个 RunStatus 在这里各处理一次。"""
    if result.status is RunStatus.COMPLETED:
        return 200, OrderStartResponse(
            status="completed",
            session_id=result.turn_id,
            last_screenshot_base64=result.screenshot_b64,
            logs=result.logs,
        )
    if result.status is RunStatus.NEEDS_ACKNOWLEDGEMENT:
        return 200, OrderStartResponse(
            status="needs_ack",
            session_id=result.turn_id,
            safety_checks=[SafetyCheckItem(**c.to_dict()) for c in result.safety_checks],
            last_screenshot_base64=result.screenshot_b64,
            logs=result.logs,
        )
    if result.status is RunStatus.BLOCKED:
        # 策略性停止，不是服务端错误
        return 200, OrderStartResponse(
            status="error",
            message=result.message,
            blocked_url=result.blocked_url,
            last_screenshot_base64=result.screenshot_b64,
            logs=result.logs,
        )
    if result.status is RunStatus.ERROR:
        return _ERROR_HTTP_STATUS.get(result.error_kind, 500), OrderStartResponse(
            status="error",
            message=result.message or "Failed",
            logs=result.logs or None,
        )
    raise ValueError(f"未知运行状态: {result.status}")


@router.post("/start", response_model=OrderStartResponse, response_model_exclude_none=True)
async def order_start(body: Optional[OrderStartRequest] = None):
    """执行下单助手任务：打开起始页，按推理服务提议逐步操作浏览器，直至完成、需确认、被拦截或出错。"""
    body = body or OrderStartRequest()
    request = build_run_request(
        prompt=body.prompt,
        start_url=body.start_url,
        allow_domains=body.allow_domains,
        session_id=body.session_id,
        acknowledged_safety_ids=body.acknowledged_safety_ids,
    )
    result = await run_order(request)
    status_code, response = to_response(result)
    return JSONResponse(
        status_code=status_code,
        content=response.model_dump(by_alias=True, exclude_none=True),
    )
