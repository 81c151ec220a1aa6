"""
下单助手请求/响应 Schema（对外字段使用 camelCase）
"""
from pydantic import BaseModel, ConfigDict, Field
from typing import Literal, Optional, List


class OrderStartRequest(BaseModel):
    """下单助手执行请求；prompt 在接口层校验，缺失时返回 400 而非 422"""
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    prompt: Optional[str] = None
    start_url: Optional[str] = Field(default=None, alias="startUrl")
    allow_domains: Optional[List[str]] = Field(default=None, alias="allowDomains")
    session_id: Optional[str] = Field(default=None, alias="sessionId")
    acknowledged_safety_ids: Optional[List[str]] = Field(default=None, alias="acknowledgedSafetyIds")


class SafetyCheckItem(BaseModel):
    """待确认的安全检查"""
    id: str
    code: Optional[str] = None
    message: Optional[str] = None


class OrderStartResponse(BaseModel):
    """下单助手执行响应：status 为 needs_ack / completed / error"""
    model_config = ConfigDict(populate_by_name=True)

    status: Literal["needs_ack", "completed", "error"]
    session_id: Optional[str] = Field(default=None, alias="sessionId")
    safety_checks: Optional[List[SafetyCheckItem]] = Field(default=None, alias="safetyChecks")
    last_screenshot_base64: Optional[str] = Field(default=None, alias="lastScreenshotBase64")
    logs: Optional[List[str]] = None
    message: Optional[str] = None
    blocked_url: Optional[str] = Field(default=None, alias="blockedUrl")
