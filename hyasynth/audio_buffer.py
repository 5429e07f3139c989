"""Planar multi-channel sample buffers."""

from __future__ import annotations

import numpy as np


class AudioBuffer:
    """A planar view over float32 samples: all frames of channel 0, then channel 1, ...

    The buffer wraps the given array without copying when it is already a
    float32 numpy array, so writes through the buffer reach the caller's data.
    """

    __slots__ = ("channels", "frames", "data")

    def __init__(self, data, channels: int, frames: int | None = None) -> None:
        if channels <= 0:
            raise ValueError("an audio buffer needs at least one channel")
        array = np.asarray(data, dtype=np.float32)
        if frames is None:
            frames = len(array) // channels
        if frames < 0 or frames * channels > len(array):
            raise ValueError(
                f"{channels} channels of {frames} frames do not fit in {len(array)} samples"
            )
        self.channels = channels
        self.frames = frames
        self.data = array[: channels * frames]

    def __repr__(self) -> str:
        return f"AudioBuffer(channels={self.channels}, frames={self.frames})"

    def clear(self) -> None:
        """Set every sample to silence."""
        self.data.fill(0.0)

    def channel(self, ch: int) -> np.ndarray:
        """Return a writable view of one channel's frames."""
        if not 0 <= ch < self.channels:
            raise IndexError(f"channel {ch} out of range for {self.channels} channels")
        start = ch * self.frames
        return self.data[start : start + self.frames]