"""
在线状态模块 - Lanyard 连接和 Spotify 收听状态监视
"""

from .lanyard_client import LanyardClient, LanyardOpcode
from .presence_watcher import PresenceWatcher

__all__ = [
    'LanyardClient',
    'LanyardOpcode',
    'PresenceWatcher'
]
