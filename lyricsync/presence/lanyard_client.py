"""Lanyard WebSocket 客户端 - 订阅用户的实时在线状态"""

import asyncio
import json
import logging
import aiohttp
from typing import Optional, Callable, Dict, Any


DEFAULT_HEARTBEAT_INTERVAL_MS = 30000


class LanyardOpcode:
    """Lanyard 操作码"""
    EVENT = 0
    HELLO = 1
    INITIALIZE = 2
    HEARTBEAT = 3


class LanyardClient:
    """
    Lanyard WebSocket 客户端

    收到 Hello 后开始心跳并订阅用户，在线状态事件交给回调处理。
    连接关闭或出错时等待固定时间后自动重连，直到调用 close()。
    """

    def __init__(
        self,
        user_id: str,
        on_presence: Callable[[Dict[str, Any]], None],
        url: str = "wss://api.lanyard.rest/socket",
        reconnect_delay: float = 5.0,
        on_disconnect: Optional[Callable[[], None]] = None
    ):
        """
        初始化 Lanyard 客户端

        Args:
            user_id: 要订阅的 Discord 用户ID
            on_presence: 在线状态回调，参数为事件的 ``d`` 字段
            url: Lanyard WebSocket 地址
            reconnect_delay: 重连等待时间（秒）
            on_disconnect: 连接断开回调
        """
        self.logger = logging.getLogger("lyricsync.presence.lanyard_client")
        self.user_id = user_id
        self.on_presence = on_presence
        self.url = url
        self.reconnect_delay = reconnect_delay
        self.on_disconnect = on_disconnect

        self._ws: Optional[aiohttp.ClientWebSocketResponse] = None
        self._heartbeat_task: Optional[asyncio.Task] = None
        self._closed = False

    async def run_forever(self) -> None:
        """连接并保持连接，断开后自动重连"""
        while not self._closed:
            try:
                await self._connect_once()
            except (aiohttp.ClientError, asyncio.TimeoutError) as e:
                self.logger.error(f"WebSocket 错误: {e}")
            finally:
                self._stop_heartbeat()
                self._ws = None
                if self.on_disconnect:
                    self.on_disconnect()

            if self._closed:
                break

            self.logger.warning(f"{self.reconnect_delay:.0f} 秒后重新连接...")
            await asyncio.sleep(self.reconnect_delay)

    async def _connect_once(self) -> None:
        self.logger.info("正在连接 Lanyard WebSocket API...")

        async with aiohttp.ClientSession() as session:
            async with session.ws_connect(self.url) as ws:
                self._ws = ws
                self.logger.info("✅ 已连接到 Lanyard WebSocket API")

                async for msg in ws:
                    if msg.type == aiohttp.WSMsgType.TEXT:
                        await self.handle_raw_message(msg.data)
                    elif msg.type == aiohttp.WSMsgType.ERROR:
                        self.logger.error(f"WebSocket 错误: {ws.exception()}")
                        break

                self.logger.warning(f"WebSocket 连接已关闭 (代码: {ws.close_code})")

    async def handle_raw_message(self, raw: str) -> None:
        """解析并处理一条文本消息"""
        try:
            message = json.loads(raw)
        except json.JSONDecodeError as e:
            self.logger.error(f"解析 WebSocket 消息失败: {e}")
            return

        if not isinstance(message, dict):
            self.logger.warning("忽略非对象 WebSocket 消息")
            return

        await self.handle_message(message)

    async def handle_message(self, message: Dict[str, Any]) -> None:
        """
        按操作码处理消息

        Args:
            message: 解析后的 Lanyard 消息
        """
        op = message.get('op')
        data = message.get('d')

        if op == LanyardOpcode.HELLO:
            interval = (data if isinstance(data, dict) else {}).get('heartbeat_interval')
            if not isinstance(interval, (int, float)) or isinstance(interval, bool) or not 0 < interval < float('inf'):
                self.logger.warning(f"无效的心跳间隔: {interval}，使用默认值 {DEFAULT_HEARTBEAT_INTERVAL_MS}ms")
                interval = DEFAULT_HEARTBEAT_INTERVAL_MS
            self._start_heartbeat(interval / 1000)
            await self._send({'op': LanyardOpcode.INITIALIZE, 'd': {'subscribe_to_id': self.user_id}})
            self.logger.info(f"已订阅用户ID: {self.user_id}")
        elif op == LanyardOpcode.EVENT:
            if isinstance(data, dict):
                self.logger.debug(f"收到 Lanyard 事件: {message.get('t')}")
                try:
                    self.on_presence(data)
                except Exception as e:
                    self.logger.error(f"处理在线状态事件时出错: {e}", exc_info=True)

    async def _send(self, payload: Dict[str, Any]) -> None:
        if self._ws is None or self._ws.closed:
            return
        await self._ws.send_str(json.dumps(payload))

    def _start_heartbeat(self, interval: float) -> None:
        self._stop_heartbeat()
        self._heartbeat_task = asyncio.get_running_loop().create_task(self._heartbeat(interval))

    async def _heartbeat(self, interval: float) -> None:
        while True:
            await asyncio.sleep(interval)
            await self._send({'op': LanyardOpcode.HEARTBEAT})

    def _stop_heartbeat(self) -> None:
        if self._heartbeat_task is not None:
            self._heartbeat_task.cancel()
            self._heartbeat_task = None

    async def close(self) -> None:
        """关闭连接并停止重连"""
        self._closed = True
        self._stop_heartbeat()
        if self._ws is not None and not self._ws.closed:
            await self._ws.close()
