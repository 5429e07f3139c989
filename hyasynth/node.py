"""The DSP node interface and the context passed to it."""

from __future__ import annotations

import enum
from abc import ABC, abstractmethod
from dataclasses import dataclass, replace
from typing import Any, Sequence

from .audio_buffer import AudioBuffer


class Polyphony(enum.Enum):
    """How many instances of a node the graph keeps."""

    GLOBAL = "global"
    """One shared instance (effects, output)."""

    PER_VOICE = "per_voice"
    """One instance per voice (oscillators, envelopes)."""


@dataclass(frozen=True)
class ProcessContext:
    """Information a node gets for one processing call."""

    frames: int
    sample_rate: float
    sample_pos: int
    bpm: float
    voice: Any = None

    def with_voice(self, voice: Any) -> "ProcessContext":
        """Return a copy carrying the given voice context."""
        return replace(self, voice=voice)


def _require_non_negative(name: str, value: int) -> None:
    if value < 0:
        raise ValueError(f"{name} must not be negative, got {value}")


class Node(ABC):
    """A DSP node. It only processes audio; it never schedules or dispatches events."""

    @abstractmethod
    def prepare(self, sample_rate: float, max_block: int) -> None:
        """Called before playback starts or when the graph is rebuilt."""

    @abstractmethod
    def process(
        self,
        ctx: ProcessContext,
        inputs: Sequence[AudioBuffer],
        output: AudioBuffer,
    ) -> bool:
        """Render into ``output``; return True if the output is silent."""

    @abstractmethod
    def num_channels(self) -> int:
        """Number of output channels."""

    def polyphony(self) -> Polyphony:
        return Polyphony.GLOBAL

    @abstractmethod
    def set_param(self, param_id: int, value: float) -> None:
        """Set a parameter value."""

    def reset(self) -> bool:
        """Clear internal state on transport stop or seek.

        Returns whether any state was cleared; a stateless node clears nothing.
        """
        return False

    def start_audio(
        self, audio_id: int, start_sample: int, duration_samples: int, gain: float
    ) -> bool:
        """Start playing an audio region.

        Returns whether the request was taken up; nodes that do not play
        audio check the arguments and ignore it.
        """
        _require_non_negative("audio_id", audio_id)
        _require_non_negative("start_sample", start_sample)
        _require_non_negative("duration_samples", duration_samples)
        return False

    def stop_audio(self, audio_id: int) -> bool:
        """Stop playing an audio region; returns whether the request was taken up."""
        _require_non_negative("audio_id", audio_id)
        return False

    def handles_audio(self) -> bool:
        return False

    def load_audio(self, data: Any) -> bool:
        """Receive shared audio data; returns whether the data was kept."""
        return self.handles_audio() and data is not None and False

    def unload_audio(self, audio_id: int) -> bool:
        """Drop audio data; returns whether anything was dropped."""
        _require_non_negative("audio_id", audio_id)
        return False