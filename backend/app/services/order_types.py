"""
下单助手领域类型：请求、动作、安全检查、单轮结果与运行结果

这些对象只存活于一次请求内，不做持久化。
"""
import enum
from dataclasses import dataclass, field
from typing import Any, Dict, FrozenSet, List, Optional, Tuple, Union


@dataclass(frozen=True)
class PendingSafetyCheck:
    """推理服务附加在动作上的安全检查，需用户按 id 显式确认后动作才可执行"""
    id: str
    code: Optional[str] = None
    message: Optional[str] = None

    def to_dict(self) -> Dict[str, Optional[str]]:
        return {"id": self.id, "code": self.code, "message": self.message}


@dataclass(frozen=True)
class ClickAction:
    x: int
    y: int
    button: str = "left"
    type: str = "click"


@dataclass(frozen=True)
class ScrollAction:
    x: int
    y: int
    delta_x: int = 0
    delta_y: int = 0
    type: str = "scroll"


@dataclass(frozen=True)
class KeypressAction:
    keys: Tuple[str, ...] = ()
    type: str = "keypress"


@dataclass(frozen=True)
class TypeAction:
    text: str = ""
    type: str = "type"


@dataclass(frozen=True)
class WaitAction:
    type: str = "wait"


@dataclass(frozen=True)
class ScreenshotAction:
    type: str = "screenshot"


@dataclass(frozen=True)
class OtherAction:
    """未识别的动作类型：记录日志，不操作浏览器"""
    raw: Dict[str, Any] = field(default_factory=dict)

    @property
    def type(self) -> str:
        return str(self.raw.get("type") or "unknown")


Action = Union[ClickAction, ScrollAction, KeypressAction, TypeAction, WaitAction, ScreenshotAction, OtherAction]


@dataclass(frozen=True)
class ComputerCall:
    """推理服务提出的一次动作调用"""
    call_id: str
    action: Action
    pending_safety_checks: Tuple[PendingSafetyCheck, ...] = ()


@dataclass(frozen=True)
class AgentTurn:
    """与推理服务的一次交互；id 作为下一轮的 previous_response_id"""
    id: str
    calls: Tuple[ComputerCall, ...] = ()

    @property
    def safety_checks(self) -> List[PendingSafetyCheck]:
        return [check for call in self.calls for check in call.pending_safety_checks]


@dataclass
class RunRequest:
    prompt: str
    start_url: str
    allowed_domains: List[str] = field(default_factory=list)
    prior_session_id: Optional[str] = None
    acknowledged_safety_ids: FrozenSet[str] = frozenset()


class RunStatus(str, enum.Enum):
    """运行的终止状态；每个出口只在这里枚举一次"""
    COMPLETED = "completed"
    NEEDS_ACKNOWLEDGEMENT = "needs_ack"
    BLOCKED = "blocked"
    ERROR = "error"


class ErrorKind(str, enum.Enum):
    INVALID_REQUEST = "invalid_request"
    CONFIGURATION = "configuration"
    RUN = "run"


@dataclass
class RunResult:
    status: RunStatus
    turn_id: Optional[str] = None
    screenshot_b64: Optional[str] = None
    logs: List[str] = field(default_factory=list)
    safety_checks: List[PendingSafetyCheck] = field(default_factory=list)
    blocked_url: Optional[str] = None
    message: Optional[str] = None
    error_kind: Optional[ErrorKind] = None

    @classmethod
    def failure(cls, kind: ErrorKind, message: str, logs: Optional[List[str]] = None) -> "RunResult":
        # 失败结果不携带截图
        return cls(status=RunStatus.ERROR, error_kind=kind, message=message, logs=list(logs or []))
