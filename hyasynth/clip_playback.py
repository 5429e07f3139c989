"""Turns playing clips into note and audio events in musical time."""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Any

from .event import (
    MusicalAudioStart,
    MusicalEvent,
    MusicalNoteOffTarget,
    MusicalNoteOnTarget,
)


def _fmod(value: float, divisor: float) -> float:
    """Floating remainder with the dividend's sign; NaN for a zero divisor."""
    if divisor == 0 or math.isnan(value) or math.isnan(divisor):
        return math.nan
    return math.fmod(value, divisor)


def _to_sample_count(value: float) -> int:
    """Truncate to a non-negative whole number of samples."""
    if math.isnan(value) or value <= 0:
        return 0
    return int(value)


@dataclass(frozen=True)
class _ActiveNote:
    track_id: int
    clip_id: int
    target_node: int
    note: int
    end_beat: float


@dataclass
class _PlayingClip:
    clip_id: int
    track_id: int
    start_beat: float
    clip_position: float = 0.0


class ClipPlayback:
    """Tracks which clips play on which tracks and produces their events.

    The arrangement passed in must provide ``playing_clips`` (track id to clip
    id), ``get_clip(id)``, ``get_track(id)``, ``is_track_audible(id)`` and an
    ``audio_pool`` with ``get(id)``. Clips carry ``length``, ``looping``,
    ``notes()`` and ``audio_regions()``; tracks carry ``target_node``.
    """

    def __init__(self, sample_rate: float) -> None:
        self.sample_rate = sample_rate
        self._playing: dict[int, _PlayingClip] = {}
        self._active_notes: list[_ActiveNote] = []

    def start_clip(self, clip_id: int, track_id: int, current_beat: float) -> None:
        """Start a clip on a track, replacing whatever the track was playing."""
        self.stop_track(track_id, current_beat)
        self._playing[track_id] = _PlayingClip(clip_id, track_id, current_beat)

    def stop_track(self, track_id: int, current_beat: float) -> None:
        """Stop the clip on a track and forget its sounding notes."""
        playing = self._playing.pop(track_id, None)
        if playing is None:
            return
        self._active_notes = [
            n
            for n in self._active_notes
            if not (n.track_id == track_id and n.clip_id == playing.clip_id)
        ]

    def stop_all(self) -> None:
        self._playing.clear()
        self._active_notes.clear()

    def sync_with_arrangement(self, arrangement: Any, current_beat: float) -> None:
        """Start and stop clips so that playback matches the arrangement."""
        wanted = arrangement.playing_clips
        for track_id, clip_id in list(wanted.items()):
            playing = self._playing.get(track_id)
            if playing is None or playing.clip_id != clip_id:
                self.start_clip(clip_id, track_id, current_beat)

        for track_id in [t for t in self._playing if t not in wanted]:
            self.stop_track(track_id, current_beat)

    def generate_events(
        self, arrangement: Any, start_beat: float, end_beat: float, bpm: float
    ) -> list[MusicalEvent]:
        """Events from all playing clips in ``[start_beat, end_beat)``.

        Advances every playing clip's playhead by the length of the range.
        """
        events: list[MusicalEvent] = []
        beat_duration = end_beat - start_beat

        for track_id, playing in list(self._playing.items()):
            clip = arrangement.get_clip(playing.clip_id)
            if clip is None:
                continue
            track = arrangement.get_track(playing.track_id)
            if track is None:
                continue
            if not arrangement.is_track_audible(playing.track_id):
                continue
            target_node = track.target_node
            if target_node is None:
                continue

            self._generate_clip_events(
                events,
                track_id,
                playing.clip_id,
                playing.clip_position,
                clip,
                target_node,
                arrangement.audio_pool,
                start_beat,
                end_beat,
                bpm,
            )

            playing.clip_position += beat_duration
            if clip.looping and playing.clip_position >= clip.length:
                playing.clip_position = _fmod(playing.clip_position, clip.length)

        self._generate_note_offs(events, start_beat, end_beat)
        return events

    @staticmethod
    def _offset_in_window(
        event_start: float, clip: Any, clip_start: float, clip_end: float
    ) -> float | None:
        """Offset from the window start at which an event fires, or None."""
        if not clip.looping:
            if clip_start <= event_start < clip_end:
                return event_start - clip_start
            return None

        wrapped_start = _fmod(clip_start, clip.length)
        wrapped_end = _fmod(clip_end, clip.length)
        if wrapped_start <= wrapped_end:
            triggers = wrapped_start <= event_start < wrapped_end
        else:
            triggers = event_start >= wrapped_start or event_start < wrapped_end
        if not triggers:
            return None
        if event_start >= wrapped_start:
            return event_start - wrapped_start
        return (clip.length - wrapped_start) + event_start

    def _generate_clip_events(
        self,
        events: list[MusicalEvent],
        track_id: int,
        clip_id: int,
        clip_position: float,
        clip: Any,
        target_node: int,
        audio_pool: Any,
        start_beat: float,
        end_beat: float,
        bpm: float,
    ) -> None:
        clip_start = clip_position
        clip_end = clip_position + (end_beat - start_beat)

        if not clip.looping and clip_start >= clip.length:
            return

        for note in clip.notes():
            offset = self._offset_in_window(note.start, clip, clip_start, clip_end)
            if offset is None:
                continue
            absolute_beat = start_beat + offset
            events.append(
                MusicalNoteOnTarget(
                    beat=absolute_beat,
                    node_id=target_node,
                    note=note.note,
                    velocity=note.velocity,
                )
            )
            self._active_notes.append(
                _ActiveNote(
                    track_id=track_id,
                    clip_id=clip_id,
                    target_node=target_node,
                    note=note.note,
                    end_beat=absolute_beat + note.duration,
                )
            )

        for region in clip.audio_regions():
            entry = audio_pool.get(region.audio_id)
            if entry is None:
                continue
            offset = self._offset_in_window(region.start, clip, clip_start, clip_end)
            if offset is None:
                continue
            seconds_per_beat = 60.0 / bpm
            start_sample = _to_sample_count(
                region.source_offset * seconds_per_beat * entry.sample_rate
            )
            duration_samples = _to_sample_count(
                region.duration * seconds_per_beat * entry.sample_rate
            )
            events.append(
                MusicalAudioStart(
                    beat=start_beat + offset,
                    node_id=target_node,
                    audio_id=region.audio_id,
                    start_sample=start_sample,
                    duration_samples=duration_samples,
                    gain=region.gain,
                )
            )

    def _generate_note_offs(
        self, events: list[MusicalEvent], start_beat: float, end_beat: float
    ) -> None:
        remaining: list[_ActiveNote] = []
        for state in self._active_notes:
            if start_beat <= state.end_beat < end_beat:
                events.append(
                    MusicalNoteOffTarget(
                        beat=state.end_beat,
                        node_id=state.target_node,
                        note=state.note,
                    )
                )
            else:
                remaining.append(state)
        self._active_notes = remaining

    def generate_stop_events(self, current_beat: float) -> list[MusicalEvent]:
        """Note-offs at ``current_beat`` for every sounding note, which are then forgotten."""
        events: list[MusicalEvent] = [
            MusicalNoteOffTarget(
                beat=current_beat, node_id=state.target_node, note=state.note
            )
            for state in self._active_notes
        ]
        self._active_notes.clear()
        return events

    def is_playing(self) -> bool:
        return bool(self._playing)

    def active_note_count(self) -> int:
        return len(self._active_notes)