"""
下单助手 Agent：截图 -> 推理服务提议动作 -> 安全确认与域名校验 -> 执行动作，循环直至终止。

终止条件（RunStatus）：
- NEEDS_ACKNOWLEDGEMENT：本轮提议的动作带有未确认的安全检查，本轮不执行任何动作
- COMPLETED：推理服务不再提议动作，或已执行动作数达到 ORDER_MAX_TURNS（放弃任务，不视为错误）
- BLOCKED：执行前当前页面不在域名白名单内
- ERROR：请求不合法、配置缺失，或浏览器/推理服务抛出异常（不重试）

每轮只执行第一个提议的动作，其余留给后续轮次（ACTIONS_PER_TURN）。
域名校验针对执行动作之前的当前 URL，导航类动作的目的地要到下一轮才会被校验。
"""
import logging
from typing import Callable, FrozenSet, Iterable, List, Optional

from app.core.config import settings
from app.core.exceptions import ConfigurationError, InvalidRequestError
from app.services.browser_session import BrowserLaunchConfig, BrowserSession
from app.services.computer_use_client import ComputerUseClient
from app.services.domain_policy import is_allowed, normalize_domains
from app.services.order_actions import execute_action
from app.services.order_types import (
    AgentTurn,
    ErrorKind,
    PendingSafetyCheck,
    RunRequest,
    RunResult,
    RunStatus,
)

logger = logging.getLogger(__name__)

# 每轮最多执行的动作数，限制单次推理结果的影响范围
ACTIONS_PER_TURN = 1

SessionFactory = Callable[[BrowserLaunchConfig], BrowserSession]


def build_run_request(
    prompt: Optional[str],
    start_url: Optional[str] = None,
    allow_domains: Optional[Iterable[str]] = None,
    session_id: Optional[str] = None,
    acknowledged_safety_ids: Optional[Iterable[str]] = None,
) -> RunRequest:
    """由接口参数构造 RunRequest：填充默认起始页、规范化白名单。"""
    return RunRequest(
        prompt=(prompt or "").strip(),
        start_url=(start_url or "").strip() or settings.ORDER_DEFAULT_START_URL,
        allowed_domains=normalize_domains(allow_domains),
        prior_session_id=session_id or None,
        acknowledged_safety_ids=frozenset(acknowledged_safety_ids or ()),
    )


def unacknowledged_checks(turn: AgentTurn, acknowledged_ids: FrozenSet[str]) -> List[PendingSafetyCheck]:
    return [c for c in turn.safety_checks if c.id not in acknowledged_ids]


async def _drive(
    request: RunRequest,
    session: BrowserSession,
    client: ComputerUseClient,
    logs: List[str],
) -> RunResult:
    await session.launch()
    await session.goto(request.start_url)
    await session.pause(settings.ORDER_NAVIGATION_SETTLE_MS)

    screenshot = await session.screenshot_base64()
    turn = await client.start_session(request.prompt, screenshot)
    executed = 0

    while True:
        pending = unacknowledged_checks(turn, request.acknowledged_safety_ids)
        if pending:
            logger.info("存在未确认的安全检查 %s，暂停等待用户确认", [c.id for c in pending])
            return RunResult(
                status=RunStatus.NEEDS_ACKNOWLEDGEMENT,
                turn_id=turn.id,
                screenshot_b64=await session.screenshot_base64(),
                logs=logs,
                safety_checks=pending,
            )

        if not turn.calls:
            return RunResult(
                status=RunStatus.COMPLETED,
                turn_id=turn.id,
                screenshot_b64=await session.screenshot_base64(),
                logs=logs,
            )

        call = turn.calls[0]
        if len(turn.calls) > ACTIONS_PER_TURN:
            logger.info("本轮提议 %d 个动作，仅执行第一个", len(turn.calls))

        current_url = session.current_url()
        if not is_allowed(current_url or request.start_url, request.allowed_domains):
            logger.warning("当前页面不在白名单内: %s", current_url)
            return RunResult(
                status=RunStatus.BLOCKED,
                turn_id=turn.id,
                screenshot_b64=await session.screenshot_base64(),
                logs=logs,
                blocked_url=current_url,
                message=f"Blocked domain: {current_url}",
            )

        await execute_action(session, call.action, logs)
        await session.pause(settings.ORDER_ACTION_SETTLE_MS)
        screenshot = await session.screenshot_base64()

        executed += 1
        if executed >= settings.ORDER_MAX_TURNS:
            logger.info("已达最大轮次 %d，结束本次运行", settings.ORDER_MAX_TURNS)
            return RunResult(status=RunStatus.COMPLETED, turn_id=turn.id, screenshot_b64=screenshot, logs=logs)

        acknowledged = [c for c in call.pending_safety_checks if c.id in request.acknowledged_safety_ids]
        turn = await client.continue_session(
            turn.id,
            call.call_id,
            screenshot,
            acknowledged,
            session.current_url(),
        )


async def _close_quietly(session) -> None:
    try:
        await session.close()
    except Exception as e:
        logger.warning("关闭浏览器会话失败: %s", e)


async def run_order(
    request: RunRequest,
    *,
    client: Optional[ComputerUseClient] = None,
    session_factory: Optional[SessionFactory] = None,
) -> RunResult:
    """
    执行一次下单助手任务，所有失败都转换为 RunResult 返回。
    浏览器会话在返回前（包括调用方取消时）尽力关闭。
    """
    try:
        if not request.prompt:
            raise InvalidRequestError("Missing prompt")
        if client is None:
            client = ComputerUseClient()
    except InvalidRequestError as e:
        return RunResult.failure(ErrorKind.INVALID_REQUEST, str(e))
    except ConfigurationError as e:
        logger.error("下单助手配置缺失: %s", e)
        return RunResult.failure(ErrorKind.CONFIGURATION, str(e))

    if request.prior_session_id:
        # 浏览器不跨请求保留：续接时从 startUrl 重新开始，推理会话也重新开启
        logger.info("收到续接请求 session=%s，浏览器将从起始页重新开始", request.prior_session_id)
    logger.info(
        "下单助手开始: prompt 长度=%d, start_url=%s, 白名单=%s",
        len(request.prompt), request.start_url, request.allowed_domains,
    )

    session = (session_factory or BrowserSession)(BrowserLaunchConfig.from_settings())
    logs: List[str] = []
    try:
        result = await _drive(request, session, client, logs)
    except Exception as e:
        logger.exception("下单助手执行异常")
        result = RunResult.failure(ErrorKind.RUN, str(e) or "Failed", logs)
    finally:
        await _close_quietly(session)

    logger.info("下单助手结束: status=%s, 执行日志 %d 条", result.status.value, len(result.logs))
    return result
