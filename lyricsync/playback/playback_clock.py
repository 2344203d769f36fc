"""播放时钟 - 根据开始时间戳计算已播放时长"""

import time
from typing import Callable, Optional, TYPE_CHECKING

if TYPE_CHECKING:
    from .sync_engine import PlaybackSession


def wall_clock_ms() -> int:
    """当前 Unix 时间戳（毫秒）"""
    return int(time.time() * 1000)


class PlaybackClock:
    """
    播放时钟

    纯粹基于墙上时钟和会话开始时间计算，不持有内部状态。
    不对本地时钟与 Lanyard 上报时间戳之间的偏差做任何修正。
    """

    def __init__(self, time_source: Optional[Callable[[], int]] = None):
        """
        Args:
            time_source: 返回当前毫秒时间戳的函数（测试时可注入）
        """
        self._time_source = time_source or wall_clock_ms

    def now_ms(self) -> int:
        return self._time_source()

    @staticmethod
    def elapsed_ms(session: "PlaybackSession", now_ms: int) -> int:
        """已播放毫秒数，最小为0"""
        return max(0, int(now_ms) - int(session.start_timestamp_ms))

    @staticmethod
    def is_session_ended(session: "PlaybackSession", now_ms: int) -> bool:
        """会话有结束时间且当前时间已到达结束时间"""
        return session.end_timestamp_ms is not None and now_ms >= session.end_timestamp_ms
