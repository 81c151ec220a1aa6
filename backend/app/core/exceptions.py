"""
下单助手异常：在循环边界统一转换为结构化结果，不直接抛给调用方
"""


class OrderAgentError(Exception):
    """下单助手异常基类"""


class InvalidRequestError(OrderAgentError):
    """请求不合法（如缺少 prompt），不会启动浏览器"""


class ConfigurationError(OrderAgentError):
    """服务端配置缺失（如未配置 OPENAI_API_KEY）"""
