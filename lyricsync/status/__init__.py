"""
状态模块 - 歌词到状态文本的投影、限流和 Discord 状态更新
"""

from .status_projector import StatusProjector, WordState, CONSOLE_STYLES
from .rate_limiter import StatusRateLimiter
from .discord_status_client import DiscordStatusClient

__all__ = [
    'StatusProjector',
    'WordState',
    'CONSOLE_STYLES',
    'StatusRateLimiter',
    'DiscordStatusClient'
]
