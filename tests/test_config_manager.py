"""
配置管理器测试

使用临时目录中的 YAML 文件验证各配置项及默认值。
"""

import os
import shutil
import tempfile
import unittest

from lyricsync.utils.config_manager import ConfigManager, DEFAULT_WATERMARK_STATUS


class TestConfigManager(unittest.TestCase):
    """配置管理器测试类"""

    def setUp(self):
        """测试前准备"""
        self.temp_dir = tempfile.mkdtemp()
        self.config_path = os.path.join(self.temp_dir, "config.yaml")

    def tearDown(self):
        """测试后清理"""
        shutil.rmtree(self.temp_dir, ignore_errors=True)

    def _write(self, content: str) -> ConfigManager:
        with open(self.config_path, 'w', encoding='utf-8') as f:
            f.write(content)
        return ConfigManager(self.config_path)

    def test_missing_file(self):
        with self.assertRaises(FileNotFoundError):
            ConfigManager(os.path.join(self.temp_dir, "missing.yaml"))

    def test_values_from_file(self):
        config = self._write(
            "lanyard:\n"
            "  user_id: 123456789\n"
            "discord:\n"
            "  token: real-token\n"
            "status:\n"
            "  watermark: custom\n"
            "  cooldown_ms: 1000\n"
            "sync:\n"
            "  tick_interval_ms: 100\n"
            "lyrics:\n"
            "  cache_size: 5\n"
        )

        self.assertEqual(config.get_user_id(), "123456789")
        self.assertEqual(config.get_discord_token(), "real-token")
        self.assertEqual(config.get_watermark_status(), "custom")
        self.assertAlmostEqual(config.get_status_cooldown(), 1.0)
        self.assertAlmostEqual(config.get_tick_interval(), 0.1)
        self.assertEqual(config.get_lyrics_cache_size(), 5)

    def test_defaults(self):
        """测试空配置文件使用默认值"""
        config = self._write("")

        self.assertIsNone(config.get_discord_token())
        self.assertEqual(config.get_watermark_status(), DEFAULT_WATERMARK_STATUS)
        self.assertAlmostEqual(config.get_status_cooldown(), 0.45)
        self.assertAlmostEqual(config.get_tick_interval(), 0.05)
        self.assertEqual(config.get_lyric_prefix(), "🎤 ")
        self.assertEqual(config.get_lanyard_url(), "wss://api.lanyard.rest/socket")
        self.assertEqual(config.get_lrclib_url(), "https://lrclib.net/api/get")
        self.assertEqual(config.get_log_level(), "INFO")
        self.assertIsNone(config.get_log_file())

    def test_placeholder_token_disables_status(self):
        config = self._write("discord:\n  token: \"<your_discord_token>\"\n")
        self.assertIsNone(config.get_discord_token())

    def test_missing_user_id(self):
        for content in ("", "lanyard:\n  user_id: \"<your_user_id>\"\n"):
            with self.subTest(content=content):
                config = self._write(content)
                with self.assertRaises(ValueError):
                    config.get_user_id()

    def test_dot_notation_default(self):
        config = self._write("a:\n  b: 1\n")

        self.assertEqual(config.get('a.b'), 1)
        self.assertEqual(config.get('a.b.c', 'fallback'), 'fallback')
        self.assertEqual(config.get('x.y', 2), 2)


if __name__ == '__main__':
    unittest.main()
