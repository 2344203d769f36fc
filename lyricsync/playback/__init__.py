"""
播放模块 - 播放时钟和歌词同步引擎
"""

from .playback_clock import PlaybackClock
from .sync_engine import SyncEngine, SyncState, PlaybackSession, EmissionEvent

__all__ = [
    'PlaybackClock',
    'SyncEngine',
    'SyncState',
    'PlaybackSession',
    'EmissionEvent'
]
