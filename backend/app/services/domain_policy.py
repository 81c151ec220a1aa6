"""
域名白名单：后缀匹配，忽略大小写与开头的 www.
"""
from typing import Iterable, List, Optional
from urllib.parse import urlsplit


def _strip_www(host: str) -> str:
    return host[4:] if host.startswith("www.") else host


def normalize_domains(values: Optional[Iterable[str]]) -> List[str]:
    """去空白、转小写、去掉 www.，保序去重。"""
    result: List[str] = []
    for value in values or []:
        domain = _strip_www((value or "").strip().lower())
        if domain and domain not in result:
            result.append(domain)
    return result


def is_allowed(url: str, allowed_domains: Optional[List[str]]) -> bool:
    """
    当前页面是否在白名单内。
    白名单为空时放行任意域名；无法解析的 URL（没有 scheme）同样放行；
    about:blank 之类没有主机名的页面视为空主机，只有白名单为空时才放行。
    """
    if not allowed_domains:
        return True
    parts = urlsplit(url or "")
    if not parts.scheme:
        return True
    host = _strip_www((parts.hostname or "").lower())
    return any(host.endswith(_strip_www(d.lower())) for d in allowed_domains)
