"""Musical-time events for the scheduler and sample-time events for the engine."""

from __future__ import annotations

from dataclasses import dataclass


# Scheduler side: events positioned in beats. They may be reordered or quantized.


@dataclass(frozen=True)
class MusicalEvent:
    """An event positioned in musical time (beats)."""

    beat: float


@dataclass(frozen=True)
class MusicalNoteOn(MusicalEvent):
    """Global note on, for live playing."""

    note: int
    velocity: float


@dataclass(frozen=True)
class MusicalNoteOff(MusicalEvent):
    note: int


@dataclass(frozen=True)
class MusicalNoteOnTarget(MusicalEvent):
    """Note on routed to one node, for clip playback."""

    node_id: int
    note: int
    velocity: float


@dataclass(frozen=True)
class MusicalNoteOffTarget(MusicalEvent):
    node_id: int
    note: int


@dataclass(frozen=True)
class MusicalParamChange(MusicalEvent):
    node_id: int
    param_id: int
    value: float


@dataclass(frozen=True)
class MusicalAudioStart(MusicalEvent):
    """Start playing an audio-pool entry on a node, offsets in samples."""

    node_id: int
    audio_id: int
    start_sample: int
    duration_samples: int
    gain: float


@dataclass(frozen=True)
class MusicalAudioStop(MusicalEvent):
    node_id: int
    audio_id: int


# Engine side: events with no musical-time information, applied at slice starts.


@dataclass(frozen=True)
class Event:
    """An event dispatched by the engine exactly once."""


@dataclass(frozen=True)
class NoteOn(Event):
    """Note on, broadcast to every voice-enabled node."""

    note: int
    velocity: float


@dataclass(frozen=True)
class NoteOff(Event):
    note: int


@dataclass(frozen=True)
class NoteOnTarget(Event):
    node_id: int
    note: int
    velocity: float


@dataclass(frozen=True)
class NoteOffTarget(Event):
    node_id: int
    note: int


@dataclass(frozen=True)
class ParamChange(Event):
    node_id: int
    param_id: int
    value: float


@dataclass(frozen=True)
class AudioStart(Event):
    node_id: int
    audio_id: int
    start_sample: int
    duration_samples: int
    gain: float


@dataclass(frozen=True)
class AudioStop(Event):
    node_id: int
    audio_id: int