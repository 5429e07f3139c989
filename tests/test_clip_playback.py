from dataclasses import dataclass, field

import pytest

from hyasynth.clip_playback import ClipPlayback
from hyasynth.event import MusicalAudioStart, MusicalNoteOffTarget, MusicalNoteOnTarget


@dataclass
class FakeNote:
    start: float
    duration: float
    note: int
    velocity: float


@dataclass
class FakeRegion:
    start: float
    duration: float
    audio_id: int
    source_offset: float = 0.0
    gain: float = 1.0


@dataclass
class FakeClip:
    length: float
    looping: bool = False
    note_list: list = field(default_factory=list)
    region_list: list = field(default_factory=list)

    def notes(self):
        return self.note_list

    def audio_regions(self):
        return self.region_list


@dataclass
class FakeTrack:
    target_node: int | None
    audible: bool = True


@dataclass
class FakeAudioEntry:
    sample_rate: float


class FakeArrangement:
    def __init__(self):
        self.clips = {}
        self.tracks = {}
        self.playing_clips = {}
        self.audio_pool = {}

    def get_clip(self, clip_id):
        return self.clips.get(clip_id)

    def get_track(self, track_id):
        return self.tracks.get(track_id)

    def is_track_audible(self, track_id):
        return self.tracks[track_id].audible


def make_test_arrangement(looping=False):
    arr = FakeArrangement()
    arr.tracks[0] = FakeTrack(target_node=100)
    arr.clips[0] = FakeClip(
        length=4.0,
        looping=looping,
        note_list=[
            FakeNote(0.0, 1.0, 60, 0.8),
            FakeNote(1.0, 1.0, 62, 0.7),
            FakeNote(2.0, 2.0, 64, 0.9),
        ],
    )
    arr.playing_clips[0] = 0
    return arr


def test_clip_playback_sync():
    playback = ClipPlayback(48000.0)
    arr = make_test_arrangement()
    assert not playback.is_playing()
    playback.sync_with_arrangement(arr, 0.0)
    assert playback.is_playing()


def test_note_generation():
    playback = ClipPlayback(48000.0)
    arr = make_test_arrangement()
    playback.sync_with_arrangement(arr, 0.0)
    events = playback.generate_events(arr, 0.0, 1.0, 120.0)
    note_ons = [e for e in events if isinstance(e, MusicalNoteOnTarget)]
    assert note_ons, "Should generate note-on events"
    assert events == [MusicalNoteOnTarget(beat=0.0, node_id=100, note=60, velocity=0.8)]
    assert playback.active_note_count() == 1


def test_second_block_gives_next_note_and_note_off():
    playback = ClipPlayback(48000.0)
    arr = make_test_arrangement()
    playback.sync_with_arrangement(arr, 0.0)
    playback.generate_events(arr, 0.0, 1.0, 120.0)
    events = playback.generate_events(arr, 1.0, 2.0, 120.0)
    assert events == [
        MusicalNoteOnTarget(beat=1.0, node_id=100, note=62, velocity=0.7),
        MusicalNoteOffTarget(beat=1.0, node_id=100, note=60),
    ]
    assert playback.active_note_count() == 1


def test_looping_clip_wraps_around():
    playback = ClipPlayback(48000.0)
    arr = make_test_arrangement(looping=True)
    playback.sync_with_arrangement(arr, 0.0)
    first = playback.generate_events(arr, 0.0, 3.5, 120.0)
    assert [e.note for e in first if isinstance(e, MusicalNoteOnTarget)] == [60, 62, 64]
    second = playback.generate_events(arr, 3.5, 4.5, 120.0)
    ons = [e for e in second if isinstance(e, MusicalNoteOnTarget)]
    assert ons == [MusicalNoteOnTarget(beat=4.0, node_id=100, note=60, velocity=0.8)]


def test_non_looping_clip_stops_producing_notes():
    playback = ClipPlayback(48000.0)
    arr = make_test_arrangement()
    playback.sync_with_arrangement(arr, 0.0)
    playback.generate_events(arr, 0.0, 4.0, 120.0)
    events = playback.generate_events(arr, 4.0, 8.0, 120.0)
    assert events == [MusicalNoteOffTarget(beat=4.0, node_id=100, note=64)]
    assert playback.active_note_count() == 0


def test_muted_track_produces_nothing():
    playback = ClipPlayback(48000.0)
    arr = make_test_arrangement()
    arr.tracks[0].audible = False
    playback.sync_with_arrangement(arr, 0.0)
    assert playback.generate_events(arr, 0.0, 4.0, 120.0) == []


def test_track_without_target_produces_nothing():
    playback = ClipPlayback(48000.0)
    arr = make_test_arrangement()
    arr.tracks[0].target_node = None
    playback.sync_with_arrangement(arr, 0.0)
    assert playback.generate_events(arr, 0.0, 4.0, 120.0) == []


def test_audio_region_event():
    playback = ClipPlayback(48000.0)
    arr = FakeArrangement()
    arr.tracks[0] = FakeTrack(target_node=7)
    arr.audio_pool[3] = FakeAudioEntry(sample_rate=48000.0)
    arr.clips[0] = FakeClip(
        length=4.0,
        region_list=[FakeRegion(0.0, 2.0, 3, source_offset=1.0, gain=0.5)],
    )
    arr.playing_clips[0] = 0
    playback.sync_with_arrangement(arr, 0.0)
    events = playback.generate_events(arr, 0.0, 1.0, 120.0)
    assert events == [
        MusicalAudioStart(
            beat=0.0,
            node_id=7,
            audio_id=3,
            start_sample=24000,
            duration_samples=96000,
            gain=0.5,
        )
    ]


def test_audio_region_missing_from_pool_is_skipped():
    playback = ClipPlayback(48000.0)
    arr = FakeArrangement()
    arr.tracks[0] = FakeTrack(target_node=7)
    arr.clips[0] = FakeClip(length=4.0, region_list=[FakeRegion(0.0, 2.0, 9)])
    arr.playing_clips[0] = 0
    playback.sync_with_arrangement(arr, 0.0)
    assert playback.generate_events(arr, 0.0, 1.0, 120.0) == []


def test_generate_stop_events():
    playback = ClipPlayback(48000.0)
    arr = make_test_arrangement()
    playback.sync_with_arrangement(arr, 0.0)
    playback.generate_events(arr, 0.0, 0.5, 120.0)
    events = playback.generate_stop_events(2.0)
    assert events == [MusicalNoteOffTarget(beat=2.0, node_id=100, note=60)]
    assert playback.active_note_count() == 0


def test_stop_track_drops_active_notes():
    playback = ClipPlayback(48000.0)
    arr = make_test_arrangement()
    playback.sync_with_arrangement(arr, 0.0)
    playback.generate_events(arr, 0.0, 0.5, 120.0)
    assert playback.active_note_count() == 1
    playback.stop_track(0, 0.5)
    assert playback.active_note_count() == 0
    assert not playback.is_playing()


def test_stop_all():
    playback = ClipPlayback(48000.0)
    arr = make_test_arrangement()
    playback.sync_with_arrangement(arr, 0.0)
    playback.generate_events(arr, 0.0, 0.5, 120.0)
    playback.stop_all()
    assert not playback.is_playing()
    assert playback.active_note_count() == 0


def test_sync_stops_removed_tracks():
    playback = ClipPlayback(48000.0)
    arr = make_test_arrangement()
    playback.sync_with_arrangement(arr, 0.0)
    arr.playing_clips.clear()
    playback.sync_with_arrangement(arr, 1.0)
    assert not playback.is_playing()


@pytest.mark.parametrize("switch_at", [1.0, 2.5])
def test_sync_switching_clip_restarts_from_clip_start(switch_at):
    playback = ClipPlayback(48000.0)
    arr = make_test_arrangement()
    arr.clips[1] = FakeClip(length=2.0, note_list=[FakeNote(0.0, 0.5, 72, 1.0)])
    playback.sync_with_arrangement(arr, 0.0)
    playback.generate_events(arr, 0.0, switch_at, 120.0)
    arr.playing_clips[0] = 1
    playback.sync_with_arrangement(arr, switch_at)
    events = playback.generate_events(arr, switch_at, switch_at + 0.25, 120.0)
    assert events == [
        MusicalNoteOnTarget(beat=switch_at, node_id=100, note=72, velocity=1.0)
    ]
    assert playback.active_note_count() == 1