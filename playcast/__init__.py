"""
Playcast - "now playing" broadcast server.

Playcast serves the current playback info of a host music application to
overlays, stream widgets and remote displays, over plain HTTP and over a
hand-rolled WebSocket push channel on the same port.
"""

__version__ = "0.1.0"
__license__ = "GPL-2.0"

from playcast.config import PluginConfig, load_config
from playcast.core.playback import PlaybackInfo
from playcast.server import PlaybackServer

__all__ = ["PlaybackInfo", "PlaybackServer", "PluginConfig", "load_config", "__version__"]
