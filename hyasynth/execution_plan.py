"""Precompiled per-block plans, sliced at event boundaries."""

from __future__ import annotations

from dataclasses import dataclass, field

from .event import Event


@dataclass
class SlicePlan:
    """A run of frames inside a block; its events apply at the slice start."""

    frame_offset: int
    frame_count: int
    events: list[Event] = field(default_factory=list)


@dataclass
class ExecutionPlan:
    """One audio block of work, produced by the scheduler and run by the engine."""

    sample_rate: float = 48_000.0
    block_start_sample: int = 0
    block_frames: int = 0
    bpm: float = 120.0
    slices: list[SlicePlan] = field(default_factory=list)