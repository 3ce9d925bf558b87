"""Local audio output.

Importing this package requires PyAudio (the `audio` extra).
"""

from .player import Player

__all__ = ["Player"]
