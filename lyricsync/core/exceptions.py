"""
异常定义 - 歌词同步系统的错误分类

所有异常都不会对宿主进程造成致命影响，
最终都降级为"本曲目无同步歌词"。
"""

from typing import Dict, Optional


class LyricSyncError(Exception):
    """LyricSync 自定义异常基类"""


class ProviderUnavailable(LyricSyncError):
    """
    单个歌词提供者不可用

    网络错误、响应格式错误或返回空结果时抛出，由解析器回退到下一个提供者。
    """
    def __init__(self, provider: str, reason: str):
        super().__init__(f"{provider}: {reason}")
        self.provider = provider
        self.reason = reason


class NoLyricsFound(LyricSyncError):
    """
    所有歌词提供者均已尝试且失败

    调用方应将其视为非致命情况，仅跳过同步显示。
    """
    def __init__(self, title: str, errors: Optional[Dict[str, str]] = None):
        self.title = title
        self.errors = errors or {}
        details = "; ".join(f"{name}: {reason}" for name, reason in self.errors.items())
        message = f"未找到歌词: {title}"
        if details:
            message = f"{message} ({details})"
        super().__init__(message)


class MalformedLyricData(LyricSyncError):
    """歌词数据格式异常 - 只记录日志，降级为空序列，从不向外传播"""


class StatusAuthError(LyricSyncError):
    """
    Discord 令牌无效或已过期

    在 HTTP 401/403 时抛出，状态客户端据此暂停后续更新直到重新验证。
    """
    def __init__(self, status: int):
        super().__init__(f"Discord 令牌无效 (HTTP {status})")
        self.status = status
