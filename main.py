#!/usr/bin/env python3
"""
LyricSync - 将 Spotify 正在播放的歌词实时同步到 Discord 自定义状态

主程序入口点，负责配置加载、应用初始化和优雅的启动/关闭处理。
"""
import asyncio
import logging

from lyricsync.app import LyricSyncApp
from lyricsync.utils.config_manager import ConfigManager
from lyricsync.utils.logger import setup_logger


async def _run_app(app: LyricSyncApp) -> None:
    try:
        await app.run()
    finally:
        await app.shutdown()


def main() -> int:
    """
    LyricSync 主入口函数。

    Returns:
        int: 退出代码（0表示成功，1表示错误）
    """
    try:
        config = ConfigManager()
    except FileNotFoundError as e:
        logging.basicConfig(level=logging.INFO)
        logging.getLogger("lyricsync").error(f"❌ 配置文件错误: {e}")
        return 1

    setup_logger(
        log_level=config.get_log_level(),
        log_file=config.get_log_file(),
        max_size=config.get_log_max_size(),
        backup_count=config.get_log_backup_count()
    )
    logger = logging.getLogger("lyricsync")

    logger.info("=" * 60)
    logger.info("🎵 LyricSync 启动中...")
    logger.info("=" * 60)

    try:
        app = LyricSyncApp(config)
    except ValueError as e:
        logger.error(f"❌ 配置错误: {e}")
        logger.error("请检查 config/config.yaml 文件中的 lanyard.user_id")
        return 1

    logger.info("按 Ctrl+C 停止")
    try:
        asyncio.run(_run_app(app))
    except KeyboardInterrupt:
        logger.info("🛑 用户停止了程序 (Ctrl+C)")
        return 0
    except Exception as e:
        logger.error(f"❌ 运行时发生意外错误: {e}", exc_info=True)
        return 1

    return 0


if __name__ == "__main__":
    exit(main())
