# hyasynth

hyasynth is a library for building modular audio synthesis engines. You describe a patch as a graph of nodes and compile it into a runtime `Graph`. An `Engine` then renders audio by running execution plans. Each plan covers one audio block and is split into slices at event boundaries, so events take effect at an exact sample. `ClipPlayback` turns clips that are playing into beat-timed note and audio events.

Sample data is held in `float32` numpy arrays.

## Install

```
pip install .
```

To run the tests as well:

```
pip install ".[test]"
pytest
```

## Modules

- `hyasynth.audio_buffer` provides `AudioBuffer`, a planar view over `float32` samples. All frames of channel 0 come first, then all frames of channel 1, and so on.
  - When the data is already a `float32` array, the buffer wraps it without copying.
  - `clear()` silences the buffer.
  - `channel(ch)` returns a writable view of one channel. A bad channel index raises `IndexError`.
- `hyasynth.modulation` provides `ModSignal`, a modulation source. `ModSignal.constant`, `ModSignal.control` and `ModSignal.audio` create the three kinds listed in `ModKind`. `value_control()` and `value_audio(frame)` read a value from it.
- `hyasynth.event` holds the two families of events.
  - Beat-timed events subclass `MusicalEvent`: `MusicalNoteOn`, `MusicalNoteOff`, `MusicalNoteOnTarget`, `MusicalNoteOffTarget`, `MusicalParamChange`, `MusicalAudioStart` and `MusicalAudioStop`.
  - Engine-side events subclass `Event` and carry no time: `NoteOn`, `NoteOff`, `NoteOnTarget`, `NoteOffTarget`, `ParamChange`, `AudioStart` and `AudioStop`.
- `hyasynth.execution_plan` provides `ExecutionPlan` and `SlicePlan`.
  - An `ExecutionPlan` is one block. It holds the sample rate, the block's start sample, its frame count, the tempo and a list of slices.
  - A `SlicePlan` has a frame offset, a frame count and the events that apply at its start.
- `hyasynth.node` provides the abstract `Node` base class for DSP nodes, along with `Polyphony` and `ProcessContext`.
  - `Polyphony` has two values. `GLOBAL` keeps one shared instance of a node. `PER_VOICE` keeps one instance per voice.
  - `ProcessContext` carries the frame count, sample rate, sample position, tempo and, for per-voice nodes, the voice.
  - The audio-playback hooks on `Node` (`start_audio`, `stop_audio`, `load_audio`, `unload_audio`) default to ignoring the request and returning `False`. `start_audio`, `stop_audio` and `unload_audio` first check that their ids and sample counts are not negative.
- `hyasynth.node_factory` provides the factory classes and the type registry.
  - `NodeFactory` is the abstract factory.
  - `SimpleNodeFactory` builds nodes from a callable. Its nodes are stereo unless `channels` is given.
  - `NodeRegistry` maps type ids to metadata and factories. Metadata objects need `type_id` and `category` attributes. The registry supports `register`, `get_info`, `get_factory`, iteration, `len()` and `by_category()`.
- `hyasynth.graph` provides `Graph`, which owns the node instances (`NodeInstance`, `GraphNode`) and their output buffers (`NodeBuffer`).
  - `prepare(sample_rate)` prepares every node, clears the buffers and computes a topological processing order. It also runs on a graph with cycles: nodes left over by the sort are appended to the order.
  - `process(frames, sample_pos, bpm, voices)` runs one block. Per-voice outputs are summed before they reach global nodes. A voice is reported by `drain_finished_voices()` only when every per-voice node has returned silence for it.
  - `connect` raises `IndexError` for an unknown node index.
  - `process` raises `ValueError` when `frames` is negative or exceeds `max_block`.
- `hyasynth.compile` provides `compile_graph(definition, registry, max_block, max_voices)`.
  - Nodes are created in ascending id order and their parameter values are applied.
  - Each source→destination pair becomes a single edge.
  - The output node is chosen as follows: the definition's `output_node` if that id exists in the definition; otherwise, when `output_node` is `None`, the last node created.
  - Errors raise `UnknownNodeTypeError` or `InvalidConnectionError`. Both subclass `CompileError`.
- `hyasynth.engine` provides `Engine(graph, voices)`.
  - `process_plan(plan)` applies each slice's events and processes the slice. It then deactivates finished voices and, at the end of the block, clears voice triggers.
  - Further methods are `apply_event`, `play`, `stop` (which also resets), `set_tempo`, `seek` (which resets), `note_on`, `note_off`, `set_param`, `reset`, `output_buffer`, `active_voices` and `swap_graph`.
- `hyasynth.clip_playback` provides `ClipPlayback`.
  - `sync_with_arrangement` starts and stops clips to match an arrangement.
  - `generate_events(arrangement, start_beat, end_beat, bpm)` returns note-ons, audio starts and note-offs for the beat range and advances each clip's playhead. It handles looping clips.
  - `generate_stop_events` returns a note-off for every sounding note.

## Example

```python
from dataclasses import dataclass, field

from hyasynth.compile import compile_graph
from hyasynth.node import Node, Polyphony
from hyasynth.node_factory import NodeRegistry, SimpleNodeFactory


@dataclass
class TypeInfo:
    type_id: int
    name: str
    category: str


@dataclass
class NodeDef:
    type_id: int
    param_values: dict = field(default_factory=dict)


@dataclass
class Connection:
    source_node: int
    dest_node: int


@dataclass
class GraphDef:
    nodes: dict
    connections: list
    output_node: int | None = None


class Constant(Node):
    def __init__(self):
        self.level = 0.0

    def prepare(self, sample_rate, max_block):
        pass

    def process(self, ctx, inputs, output):
        output.data[:] = self.level
        return self.level == 0.0

    def num_channels(self):
        return 1

    def set_param(self, param_id, value):
        self.level = value


class Passthrough(Constant):
    def process(self, ctx, inputs, output):
        output.data[:] = inputs[0].data
        return False


class NoVoices:
    def active_voices(self):
        return []


registry = NodeRegistry()
registry.register(TypeInfo(1, "Constant", "Sources"),
                  SimpleNodeFactory(Constant, Polyphony.GLOBAL, channels=1))
registry.register(TypeInfo(2, "Passthrough", "Utility"),
                  SimpleNodeFactory(Passthrough, Polyphony.GLOBAL, channels=1))

definition = GraphDef(
    nodes={10: NodeDef(1, {0: 0.25}), 20: NodeDef(2)},
    connections=[Connection(10, 20)],
    output_node=20,
)

graph = compile_graph(definition, registry, 512, 8)
graph.prepare(48_000.0)
graph.process(256, 0, 120.0, NoVoices())
print(graph.output_buffer(256)[:4])   # [0.25 0.25 0.25 0.25]
```

To drive the graph through an `Engine`, pass `Engine` a voice allocator object. It must provide `note_on`, `note_off`, `deactivate`, `clear_triggers`, `active_count` and `active_voices`. Each voice listed by `active_voices` must carry an integer `id`. Then build `ExecutionPlan` objects whose `SlicePlan`s hold the events, and hand them to `process_plan`.

## What the package does not do

hyasynth provides the graph, compiler, engine and clip playback machinery. It does not include:

- ready-made nodes such as oscillators, envelopes, filters or effects;
- a voice allocator;
- a session, track or arrangement model. `compile_graph` and `ClipPlayback` read these from objects you supply;
- a scheduler that turns `MusicalEvent`s into `ExecutionPlan`s;
- audio device output or file writing;
- a command-line program.