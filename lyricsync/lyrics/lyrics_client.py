"""歌词API客户端 - 逐字歌词API和LRCLib"""

import logging
import asyncio
import aiohttp
import json
from typing import Optional, Dict, Any

from lyricsync.core.exceptions import ProviderUnavailable
from lyricsync.core.interfaces import ILyricsProvider


class HttpLyricsClient(ILyricsProvider):
    """
    基于 aiohttp 的歌词API客户端基类

    每个提供者只尝试一次，任何失败都转换为 ProviderUnavailable。
    """

    name = "http"

    def __init__(self, base_url: str, timeout: float = 10.0, user_agent: str = "LyricSync/1.0"):
        """
        初始化客户端

        Args:
            base_url: API端点
            timeout: 请求超时（秒）
            user_agent: 请求头中的 User-Agent
        """
        self.logger = logging.getLogger(f"lyricsync.lyrics.lyrics_client.{self.name}")
        self.base_url = base_url
        self.headers = {"User-Agent": user_agent}

        # 会话超时
        self.timeout = aiohttp.ClientTimeout(total=timeout)

    async def _get_json(self, params: Dict[str, str]) -> Any:
        """
        发起GET请求并解析JSON响应

        Raises:
            ProviderUnavailable: 网络错误、超时、非200状态或无效JSON
        """
        try:
            async with aiohttp.ClientSession(timeout=self.timeout, headers=self.headers) as session:
                async with session.get(self.base_url, params=params) as response:
                    if response.status != 200:
                        raise ProviderUnavailable(self.name, f"HTTP {response.status}")

                    text_response = await response.text()

        except asyncio.TimeoutError as e:
            raise ProviderUnavailable(self.name, "请求超时") from e
        except aiohttp.ClientError as e:
            raise ProviderUnavailable(self.name, f"网络错误: {e}") from e

        if not text_response.strip():
            raise ProviderUnavailable(self.name, "空响应")

        try:
            return json.loads(text_response)
        except json.JSONDecodeError as e:
            self.logger.debug(f"响应内容（前300字符）: {text_response[:300]}...")
            raise ProviderUnavailable(self.name, f"响应不是有效的JSON: {e}") from e


class EnhancedLyricsClient(HttpLyricsClient):
    """
    逐字歌词API客户端

    仅按曲名查询，响应格式为 ``{enhancedLyrics: [...]}`` 或 ``{lyrics: "..."}``。
    """

    name = "enhanced"

    def __init__(self, base_url: str = "https://api.vmohammad.dev/lyrics", timeout: float = 10.0):
        super().__init__(base_url, timeout)

    async def fetch(self, title: str, artist: str, album: str) -> Dict[str, Any]:
        self.logger.info(f"尝试逐字歌词API: {title}")

        data = await self._get_json({"track": title})
        if not isinstance(data, dict):
            raise ProviderUnavailable(self.name, "响应不是JSON对象")

        return data


class LRCLibClient(HttpLyricsClient):
    """
    LRCLib 客户端

    按艺术家、曲名和专辑精确查询，响应格式为
    ``{syncedLyrics: "...", plainLyrics: "..."}``。
    """

    name = "lrclib"

    def __init__(self, base_url: str = "https://lrclib.net/api/get", timeout: float = 10.0):
        super().__init__(base_url, timeout)

    async def fetch(self, title: str, artist: str, album: Optional[str]) -> Dict[str, Any]:
        self.logger.info(f"尝试 LRCLib API: {artist} - {title} (专辑: {album})")

        params = {
            "artist_name": artist,
            "track_name": title,
        }
        if album:
            params["album_name"] = album

        data = await self._get_json(params)
        if not isinstance(data, dict) or not (data.get('syncedLyrics') or data.get('plainLyrics')):
            self.logger.warning("LRCLib API 未返回歌词")
            raise ProviderUnavailable(self.name, "响应中没有歌词")

        self.logger.info("✅ 从 LRCLib API 找到歌词")
        return data
