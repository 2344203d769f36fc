"""
核心接口定义 - 定义系统各模块间的抽象接口

提供依赖倒置的基础，减少模块间的耦合度。
歌词提供者和状态更新器都通过这里的接口被核心模块使用。
"""

from abc import ABC, abstractmethod
from typing import Optional, Dict, Any
from dataclasses import dataclass


@dataclass
class SpotifyTrack:
    """
    Spotify 曲目信息数据类

    由 Lanyard 在线状态数据中的 ``spotify`` 字段转换而来。
    """
    track_id: str
    song: str
    artist: str
    album: str
    start_ms: Optional[int] = None
    end_ms: Optional[int] = None

    @classmethod
    def from_presence(cls, spotify: Dict[str, Any]) -> "SpotifyTrack":
        """
        从 Lanyard 的 spotify 字段构建曲目信息

        Args:
            spotify: Lanyard 在线状态中的 spotify 字典

        Returns:
            SpotifyTrack 实例
        """
        timestamps = spotify.get('timestamps') or {}
        return cls(
            track_id=spotify.get('track_id') or "",
            song=spotify.get('song') or 'Unknown Song',
            artist=spotify.get('artist') or 'Unknown Artist',
            album=spotify.get('album') or 'Unknown Album',
            start_ms=timestamps.get('start'),
            end_ms=timestamps.get('end')
        )

    @property
    def has_timestamps(self) -> bool:
        return self.start_ms is not None

    def get_display_name(self) -> str:
        """
        获取用于显示的歌曲名称

        Returns:
            格式化的歌曲显示名称
        """
        return f"{self.artist} - {self.song}"


class ILyricsProvider(ABC):
    """歌词提供者接口 - 定义单个歌词源的获取操作"""

    name: str = "provider"

    @abstractmethod
    async def fetch(self, title: str, artist: str, album: str) -> Dict[str, Any]:
        """
        获取原始歌词数据

        Raises:
            ProviderUnavailable: 网络错误、响应格式错误或空结果
        """
        pass


class IStatusUpdater(ABC):
    """状态更新器接口 - 定义聊天平台状态文本的更新操作"""

    @abstractmethod
    def request_status_update(self, text: str) -> None:
        """请求更新状态文本（即发即忘）"""
        pass
