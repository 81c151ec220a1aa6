"""
应用配置：从环境变量读取配置
"""
from pathlib import Path
from pydantic_settings import BaseSettings, SettingsConfigDict
from typing import List


class Settings(BaseSettings):
    """应用配置类"""

    # 项目根目录
    PROJECT_ROOT: Path = Path(__file__).parent.parent.parent

    model_config = SettingsConfigDict(
        env_file=str(PROJECT_ROOT.parent / ".env"),  # 从项目根目录读取 .env
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore"
    )

    # API配置
    API_V1_STR: str = "/api/v1"
    PROJECT_NAME: str = "下单助手"
    CORS_ORIGINS: List[str] = ["*"]  # CORS允许的源

    # AI模型配置（Computer Use）
    OPENAI_API_KEY: str = ""
    OPENAI_BASE_URL: str = "https://api.openai.com/v1"
    ORDER_MODEL: str = "computer-use-preview"
    ORDER_ENVIRONMENT: str = "browser"
    ORDER_REASONING_SUMMARY: str = "concise"
    ORDER_TRUNCATION: str = "auto"
    ORDER_MAX_RETRIES: int = 0  # 推理服务调用失败不重试，单次失败即终止运行

    # 下单助手循环配置
    ORDER_DEFAULT_START_URL: str = "https://bing.com"
    ORDER_MAX_TURNS: int = 10  # 单次运行最多执行的动作数
    ORDER_VIEWPORT_WIDTH: int = 1024
    ORDER_VIEWPORT_HEIGHT: int = 768
    ORDER_NAVIGATION_SETTLE_MS: int = 500  # 打开起始页后的等待
    ORDER_ACTION_SETTLE_MS: int = 1000  # 每个动作执行后等待页面稳定
    ORDER_WAIT_ACTION_MS: int = 1500  # wait 动作的暂停时长
    ORDER_TYPE_LOG_MAX_CHARS: int = 80  # type 动作写入日志的最大字符数

    # 浏览器启动配置（沙箱、禁用扩展与文件系统访问）
    ORDER_BROWSER_HEADLESS: bool = True  # 服务器无显示器，默认无头
    ORDER_BROWSER_SANDBOX: bool = True
    ORDER_BROWSER_ARGS: str = "--disable-extensions,--disable-file-system"

    @property
    def order_browser_args_list(self) -> List[str]:
        """浏览器启动参数列表"""
        return [x.strip() for x in self.ORDER_BROWSER_ARGS.split(",") if x.strip()]

    # 日志配置
    LOG_LEVEL: str = "INFO"
    LOG_FILE: Path = PROJECT_ROOT / "logs" / "app.log"


# 创建全局配置实例
settings = Settings()
