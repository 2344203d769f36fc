"""
LyricSync - 将 Spotify 正在播放的歌词实时同步到 Discord 自定义状态
"""

__version__ = "1.0.0"
