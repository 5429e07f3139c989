"""Read-only views of modulation signals."""

from __future__ import annotations

import enum
from dataclasses import dataclass
from typing import Sequence


class ModKind(enum.Enum):
    """How often a modulation signal carries a new value."""

    CONSTANT = "constant"
    CONTROL = "control"
    AUDIO = "audio"


@dataclass(frozen=True)
class ModSignal:
    """A modulation source: a fixed value, one value per slice, or one per sample."""

    kind: ModKind
    value: float = 0.0
    values: Sequence[float] = ()

    @classmethod
    def constant(cls, value: float) -> "ModSignal":
        return cls(ModKind.CONSTANT, value=value)

    @classmethod
    def control(cls, values: Sequence[float]) -> "ModSignal":
        return cls(ModKind.CONTROL, values=values)

    @classmethod
    def audio(cls, values: Sequence[float]) -> "ModSignal":
        return cls(ModKind.AUDIO, values=values)

    def value_control(self) -> float:
        """The value to use for a whole slice."""
        if self.kind is ModKind.CONSTANT:
            return self.value
        return self.values[0]

    def value_audio(self, frame: int) -> float:
        """The value at one sample frame."""
        if self.kind is ModKind.CONSTANT:
            return self.value
        if self.kind is ModKind.CONTROL:
            return self.values[0]
        return self.values[frame]