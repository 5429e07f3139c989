"""Modular audio synthesis engine: node graphs, graph compilation, execution plans and clip playback."""

__version__ = "0.1.0"