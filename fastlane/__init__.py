"""FastLane: local-network file sharing server"""

__version__ = "1.0.0"
