"""The real-time engine: runs execution plans through the DSP graph."""

from __future__ import annotations

from typing import Any, Iterable, Protocol

import numpy as np

from .event import (
    AudioStart,
    AudioStop,
    Event,
    NoteOff,
    NoteOffTarget,
    NoteOn,
    NoteOnTarget,
    ParamChange,
)
from .execution_plan import ExecutionPlan, SlicePlan
from .graph import Graph


class VoiceAllocator(Protocol):
    """What the engine needs from a voice allocator."""

    def note_on(self, note: int, velocity: float) -> Any: ...

    def note_off(self, note: int) -> Any: ...

    def deactivate(self, voice_id: int) -> Any: ...

    def clear_triggers(self) -> Any: ...

    def active_count(self) -> int: ...

    def active_voices(self) -> Iterable[Any]: ...


class Engine:
    """Executes precompiled plans; it does no musical-time reasoning."""

    def __init__(self, graph: Graph, voices: VoiceAllocator) -> None:
        self.graph = graph
        self.voices = voices
        self.sample_pos = 0
        self.playing = False
        self.bpm = 120.0

    def process_plan(self, plan: ExecutionPlan) -> None:
        """Run one block: apply each slice's events, then process the slice."""
        self.sample_pos = plan.block_start_sample
        for slice_plan in plan.slices:
            self._process_slice(slice_plan, plan)
        # One-shot triggers stay visible for the whole block, then are cleared.
        self.voices.clear_triggers()

    def _process_slice(self, slice_plan: SlicePlan, plan: ExecutionPlan) -> None:
        for event in slice_plan.events:
            self.apply_event(event)
        slice_start = self.sample_pos + slice_plan.frame_offset
        self.graph.process(slice_plan.frame_count, slice_start, plan.bpm, self.voices)
        for voice_id in self.graph.drain_finished_voices():
            self.voices.deactivate(voice_id)

    def apply_event(self, event: Event) -> None:
        """Apply one sample-time event immediately."""
        match event:
            case NoteOn(note=note, velocity=velocity):
                self.voices.note_on(note, velocity)
            case NoteOff(note=note):
                self.voices.note_off(note)
            case NoteOnTarget(note=note, velocity=velocity):
                # Targeted notes share the global voice pool for now.
                self.voices.note_on(note, velocity)
            case NoteOffTarget(note=note):
                self.voices.note_off(note)
            case ParamChange(node_id=node_id, param_id=param_id, value=value):
                self.graph.set_param_by_id(node_id, param_id, value)
            case AudioStart(
                node_id=node_id,
                audio_id=audio_id,
                start_sample=start_sample,
                duration_samples=duration_samples,
                gain=gain,
            ):
                self.graph.start_audio_by_id(
                    node_id, audio_id, start_sample, duration_samples, gain
                )
            case AudioStop(node_id=node_id, audio_id=audio_id):
                self.graph.stop_audio_by_id(node_id, audio_id)
            case _:
                raise TypeError(f"not an engine event: {event!r}")

    def reset(self) -> None:
        """Reset the graph (transport stop or seek)."""
        self.graph.reset()

    def output_buffer(self, frames: int) -> np.ndarray | None:
        """The output node's planar samples after processing."""
        return self.graph.output_buffer(frames)

    def active_voices(self) -> int:
        """Number of voices currently sounding."""
        return self.voices.active_count()

    def play(self) -> None:
        self.playing = True

    def stop(self) -> None:
        self.playing = False
        self.reset()

    def set_tempo(self, bpm: float) -> None:
        self.bpm = bpm

    def seek(self, beat: float) -> None:
        """Reset state for a jump; the scheduler owns the position itself."""
        self.reset()

    def note_on(self, note: int, velocity: float) -> None:
        self.voices.note_on(note, velocity)

    def note_off(self, note: int) -> None:
        self.voices.note_off(note)

    def set_param(self, node_id: int, param_id: int, value: float) -> None:
        """Set a parameter by session node id; unknown ids are ignored."""
        self.graph.set_param_by_id(node_id, param_id, value)

    def swap_graph(self, new_graph: Graph) -> None:
        """Replace the graph with a newly compiled and prepared one."""
        self.graph = new_graph