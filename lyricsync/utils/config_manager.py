"""Configuration manager for LyricSync."""
import logging
import os
from typing import Any, Dict, Optional
import yaml

DEFAULT_WATERMARK_STATUS = "🎵 LyricSync by Krex - 2025 🎵"
TOKEN_PLACEHOLDERS = ("", "<your_discord_token>", "YOUR_DISCORD_TOKEN_HERE")


class ConfigManager:
    """
    Configuration manager for LyricSync.

    Loads the YAML config file once at startup; values are read-only afterwards.
    """

    def __init__(self, config_path: str = "config/config.yaml"):
        """
        Initialize the ConfigManager.

        Args:
            config_path: Path to the configuration file

        Raises:
            FileNotFoundError: If the configuration file does not exist
            yaml.YAMLError: If the configuration file is not valid YAML
        """
        self.logger = logging.getLogger("lyricsync.config")
        self.config_path = config_path
        self.config: Dict[str, Any] = {}

        self._load_config()

    def _load_config(self) -> None:
        """
        Load the configuration from the config file.

        Raises:
            FileNotFoundError: If the configuration file does not exist
            yaml.YAMLError: If the configuration file is not valid YAML
        """
        if not os.path.exists(self.config_path):
            example_path = f"{self.config_path}.example"
            if os.path.exists(example_path):
                self.logger.error(
                    f"Configuration file {self.config_path} not found. "
                    f"Please copy {example_path} to {self.config_path} and update it."
                )
            else:
                self.logger.error(f"Configuration file {self.config_path} not found.")
            raise FileNotFoundError(f"Configuration file {self.config_path} not found")

        try:
            with open(self.config_path, 'r', encoding='utf-8') as config_file:
                self.config = yaml.safe_load(config_file) or {}
                self.logger.debug(f"Loaded configuration from {self.config_path}")
        except yaml.YAMLError as e:
            self.logger.error(f"Error parsing configuration file: {e}")
            raise

    def get(self, key: str, default: Any = None) -> Any:
        """
        Get a configuration value.

        Args:
            key: The configuration key (dot notation for nested keys)
            default: Default value to return if the key is not found

        Returns:
            The configuration value or the default value if not found
        """
        keys = key.split('.')
        value = self.config

        for k in keys:
            if isinstance(value, dict) and k in value:
                value = value[k]
            else:
                self.logger.debug(f"Configuration key '{key}' not found, using default: {default}")
                return default

        return value

    def get_user_id(self) -> str:
        """
        Get the Discord user ID to monitor through Lanyard.

        Raises:
            ValueError: If the user ID is not set
        """
        user_id = self.get('lanyard.user_id')
        if not user_id or str(user_id) == "<your_user_id>":
            self.logger.error("Lanyard user ID not set in configuration")
            raise ValueError("Lanyard user ID not set in configuration")
        return str(user_id)

    def get_discord_token(self) -> Optional[str]:
        """
        Get the Discord user token used for custom status updates.

        Returns:
            The token, or None when it is not configured (status updates disabled)
        """
        token = self.get('discord.token')
        if not token or token in TOKEN_PLACEHOLDERS:
            return None
        return token

    def get_discord_api_base(self) -> str:
        return self.get('discord.api_base', 'https://discord.com/api/v9')

    def get_token_check_interval(self) -> float:
        """Seconds between periodic token validations."""
        return float(self.get('discord.token_check_interval', 600))

    def get_watermark_status(self) -> Optional[str]:
        """Status shown after token validation and when listening stops."""
        return self.get('status.watermark', DEFAULT_WATERMARK_STATUS)

    def get_status_cooldown(self) -> float:
        """Minimum interval between status updates, in seconds."""
        return float(self.get('status.cooldown_ms', 450)) / 1000

    def get_lyric_prefix(self) -> str:
        return self.get('status.lyric_prefix', '🎤 ')

    def get_tick_interval(self) -> float:
        """Sync engine polling interval, in seconds."""
        return float(self.get('sync.tick_interval_ms', 50)) / 1000

    def get_lanyard_url(self) -> str:
        return self.get('lanyard.url', 'wss://api.lanyard.rest/socket')

    def get_reconnect_delay(self) -> float:
        return float(self.get('lanyard.reconnect_delay', 5))

    def get_enhanced_lyrics_url(self) -> str:
        return self.get('lyrics.enhanced_url', 'https://api.vmohammad.dev/lyrics')

    def get_lrclib_url(self) -> str:
        return self.get('lyrics.lrclib_url', 'https://lrclib.net/api/get')

    def get_lyrics_timeout(self) -> float:
        return float(self.get('lyrics.timeout', 10))

    def get_lyrics_cache_size(self) -> int:
        return int(self.get('lyrics.cache_size', 100))

    def get_log_level(self) -> str:
        """
        Get the logging level.

        Returns:
            The logging level
        """
        return self.get('logging.level', 'INFO')

    def get_log_file(self) -> Optional[str]:
        """
        Get the log file path.

        Returns:
            The log file path or None if not set
        """
        return self.get('logging.file', None)

    def get_log_max_size(self) -> int:
        """
        Get the maximum log file size.

        Returns:
            The maximum log file size in bytes
        """
        return self.get('logging.max_size', 10485760)  # 10 MB

    def get_log_backup_count(self) -> int:
        """
        Get the number of backup log files to keep.

        Returns:
            The number of backup log files
        """
        return self.get('logging.backup_count', 5)
