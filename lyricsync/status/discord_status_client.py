"""Discord 自定义状态客户端"""

import asyncio
import json
import logging
import aiohttp
from typing import Optional, Any, Dict, Tuple

from lyricsync.core.exceptions import StatusAuthError


class DiscordStatusClient:
    """
    Discord 自定义状态客户端

    负责令牌验证、状态文本的128字符截断以及认证失败处理。
    HTTP 401/403 会使令牌失效，之后的更新只保存为待发送状态，
    直到令牌重新验证成功后再发送。
    """

    MAX_STATUS_LENGTH = 128

    def __init__(
        self,
        token: Optional[str],
        api_base: str = "https://discord.com/api/v9",
        timeout: float = 10.0,
        watermark_status: Optional[str] = None,
        token_check_interval: float = 600.0
    ):
        """
        初始化状态客户端

        Args:
            token: Discord 用户令牌，None 表示禁用状态更新
            api_base: Discord API 地址
            timeout: 请求超时（秒）
            watermark_status: 令牌验证成功及停止收听后显示的默认状态
            token_check_interval: 定期验证令牌的间隔（秒）
        """
        self.logger = logging.getLogger("lyricsync.status.discord_status_client")
        self.token = token
        self.api_base = api_base.rstrip('/')
        self.timeout = aiohttp.ClientTimeout(total=timeout)
        self.watermark_status = watermark_status
        self.token_check_interval = token_check_interval

        self.token_valid = False
        self.pending_status: Optional[str] = None
        self._monitor_task: Optional[asyncio.Task] = None

        if not self.enabled:
            self.logger.warning("Discord 令牌未配置，状态更新已禁用")

    @property
    def enabled(self) -> bool:
        return bool(self.token)

    @classmethod
    def truncate_status(cls, text: str) -> str:
        """超过128字符时截断为125字符加省略号"""
        if len(text) > cls.MAX_STATUS_LENGTH:
            return text[:cls.MAX_STATUS_LENGTH - 3] + "..."
        return text

    async def _request(self, method: str, path: str, payload: Any = None) -> Tuple[int, str]:
        """
        发起 Discord API 请求

        Returns:
            (HTTP状态码, 响应文本)
        """
        headers = {
            'Authorization': self.token,
            'Content-Type': 'application/json'
        }
        async with aiohttp.ClientSession(timeout=self.timeout) as session:
            async with session.request(method, f"{self.api_base}{path}", headers=headers, json=payload) as response:
                return response.status, await response.text()

    @staticmethod
    def _check_auth(status: int) -> None:
        if status in (401, 403):
            raise StatusAuthError(status)

    async def validate_token(self) -> bool:
        """
        验证令牌

        成功后发送待发送状态；没有待发送状态时显示默认状态。

        Returns:
            令牌是否有效
        """
        if not self.enabled:
            return False

        try:
            status, body = await self._request('GET', '/users/@me')
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            self.logger.error(f"Discord 令牌验证错误: {e}")
            return False

        if status != 200:
            self.logger.error(f"Discord 令牌验证失败: {status}")
            self.token_valid = False
            return False

        self.token_valid = True
        self.logger.info(f"✅ Discord 令牌验证成功，用户: {self._describe_user(body)}")

        pending, self.pending_status = self.pending_status, None
        initial_status = pending or self.watermark_status
        if initial_status:
            await self.update_status(initial_status)
        return True

    @staticmethod
    def _describe_user(body: str) -> str:
        try:
            user: Dict[str, Any] = json.loads(body)
        except json.JSONDecodeError:
            return "未知用户"
        if not isinstance(user, dict):
            return "未知用户"
        return str(user.get('username', '未知用户'))

    async def update_status(self, text: str) -> bool:
        """
        更新自定义状态

        Args:
            text: 状态文本（超过128字符时自动截断）

        Returns:
            是否更新成功
        """
        if not self.enabled:
            return False

        if not self.token_valid:
            self.logger.warning("Discord 令牌无效，排队状态更新...")
            self.pending_status = text
            return False

        limited_status = self.truncate_status(text)
        payload = {
            'custom_status': {
                'text': limited_status,
                'emoji_id': None,
                'emoji_name': None,
                'expires_at': None
            }
        }

        self.logger.debug(f"尝试更新 Discord 状态: {limited_status[:30]}...")

        try:
            status, body = await self._request('PATCH', '/users/@me/settings', payload)
            self._check_auth(status)
        except StatusAuthError as e:
            self.token_valid = False
            self.pending_status = text
            self.logger.error(f"Discord 令牌无效或已过期: {e}")
            return False
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            self.logger.error(f"Discord 状态更新错误: {e}")
            return False

        if status != 200:
            self.logger.error(f"更新 Discord 状态失败: {status}")
            self.logger.debug(f"响应内容: {body[:300]}")
            return False

        self.logger.info(f"✅ Discord 状态已更新: {limited_status[:50]}")
        return True

    async def clear_status(self) -> bool:
        """清除自定义状态（关闭时调用）"""
        if not self.enabled or not self.token_valid:
            return False

        try:
            status, _ = await self._request('PATCH', '/users/@me/settings', {'custom_status': None})
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            self.logger.error(f"清除 Discord 状态时出错: {e}")
            return False

        if status != 200:
            self.logger.warning(f"清除 Discord 状态失败: {status}")
            return False

        self.logger.info("Discord 状态已清除")
        return True

    def start_token_monitor(self) -> None:
        """启动定期令牌验证任务"""
        if not self.enabled or self._monitor_task is not None:
            return
        self._monitor_task = asyncio.get_running_loop().create_task(self._monitor_token())

    async def _monitor_token(self) -> None:
        while True:
            await asyncio.sleep(self.token_check_interval)
            if self.token_valid:
                await self._check_token_still_valid()
            else:
                self.logger.info("尝试重新验证 Discord 令牌...")
                await self.validate_token()

    async def _check_token_still_valid(self) -> None:
        try:
            status, _ = await self._request('GET', '/users/@me')
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            self.logger.warning(f"定期令牌验证错误: {e}")
            return

        if status != 200:
            self.logger.warning("定期检查中 Discord 令牌验证失败")
            self.token_valid = False

    async def close(self) -> None:
        """停止令牌监控任务"""
        if self._monitor_task is not None:
            self._monitor_task.cancel()
            try:
                await self._monitor_task
            except asyncio.CancelledError:
                pass
            self._monitor_task = None
