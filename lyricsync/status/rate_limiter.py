"""状态更新限流器 - 最新优先的固定冷却时间"""

import asyncio
import logging
import time
from typing import Awaitable, Callable, Optional, Set

from lyricsync.core.interfaces import IStatusUpdater


class StatusRateLimiter(IStatusUpdater):
    """
    状态更新限流器

    两次发送之间至少间隔 ``cooldown`` 秒。冷却期内到达的更新只保留最新一条，
    旧的待发送更新直接被覆盖，冷却结束后只发送一次。
    """

    def __init__(
        self,
        send: Callable[[str], Awaitable[bool]],
        cooldown: float = 0.45,
        time_source: Callable[[], float] = time.monotonic
    ):
        """
        Args:
            send: 实际发送状态的协程函数
            cooldown: 最小发送间隔（秒）
            time_source: 单调时钟（测试时可注入）
        """
        self.logger = logging.getLogger("lyricsync.status.rate_limiter")
        self._send = send
        self.cooldown = cooldown
        self._time_source = time_source

        self._last_update: Optional[float] = None
        self._pending: Optional[str] = None
        self._flush_task: Optional[asyncio.Task] = None
        self._send_tasks: Set[asyncio.Task] = set()

    @property
    def pending(self) -> Optional[str]:
        return self._pending

    def request_status_update(self, text: str) -> None:
        """
        请求更新状态（即发即忘，需要运行中的事件循环）

        Args:
            text: 状态文本
        """
        now = self._time_source()
        if self._last_update is not None and now - self._last_update < self.cooldown:
            self.logger.debug("触发限流，排队状态更新...")
            self._pending = text
            self._ensure_flush(now)
            return

        self._last_update = now
        self._pending = None
        self._spawn(text)

    def _ensure_flush(self, now: float) -> None:
        if self._flush_task is not None and not self._flush_task.done():
            return

        delay = max(0.0, self.cooldown - (now - self._last_update))
        self._flush_task = asyncio.get_running_loop().create_task(self._flush_after(delay))

    async def _flush_after(self, delay: float) -> None:
        await asyncio.sleep(delay)
        text, self._pending = self._pending, None
        self._flush_task = None
        if text is None:
            return

        self._last_update = self._time_source()
        await self._send_safely(text)

    def _spawn(self, text: str) -> None:
        task = asyncio.get_running_loop().create_task(self._send_safely(text))
        self._send_tasks.add(task)
        task.add_done_callback(self._send_tasks.discard)

    async def _send_safely(self, text: str) -> None:
        try:
            await self._send(text)
        except Exception as e:
            self.logger.error(f"发送状态更新时出错: {e}", exc_info=True)

    async def close(self) -> None:
        """取消待发送的更新和进行中的发送任务"""
        self._pending = None
        tasks = list(self._send_tasks)
        if self._flush_task is not None:
            tasks.append(self._flush_task)
            self._flush_task = None

        for task in tasks:
            task.cancel()
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)
