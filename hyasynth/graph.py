"""Audio processing graph with dependency ordering and per-voice instancing."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Iterable, Protocol

import numpy as np

from .audio_buffer import AudioBuffer
from .node import Node, Polyphony, ProcessContext
from .node_factory import NodeFactory


class VoiceSource(Protocol):
    """Anything that can list the currently active voices.

    Each listed voice context must carry an integer ``id``.
    """

    def active_voices(self) -> Iterable[Any]: ...


class NodeBuffer:
    """Output storage for one node.

    Global nodes hold ``channels * max_block`` samples; per-voice nodes hold
    that much for every voice. ``temp_voice`` is scratch space for mixing voices.
    """

    __slots__ = ("channels", "is_per_voice", "data", "temp_voice")

    def __init__(
        self, channels: int, max_block: int, is_per_voice: bool, max_voices: int
    ) -> None:
        voice_size = channels * max_block
        data_size = max_voices * voice_size if is_per_voice else voice_size
        self.channels = channels
        self.is_per_voice = is_per_voice
        self.data = np.zeros(data_size, dtype=np.float32)
        self.temp_voice = np.zeros(voice_size, dtype=np.float32)

    def as_buffer(self, frames: int) -> AudioBuffer:
        """A writable view of the first ``frames`` frames (global nodes)."""
        return AudioBuffer(self.data[: self.channels * frames], self.channels, frames)

    def as_voice_buffer(self, voice_id: int, frames: int) -> AudioBuffer:
        """A writable view of one voice's ``frames`` frames (per-voice nodes)."""
        voice_size = self.channels * frames
        offset = voice_id * voice_size
        return AudioBuffer(
            self.data[offset : offset + voice_size], self.channels, frames
        )

    def clear(self) -> None:
        self.data.fill(0.0)
        self.temp_voice.fill(0.0)


@dataclass
class NodeInstance:
    """The node objects behind one graph node: one shared, or one per voice."""

    nodes: list[Node]
    per_voice: bool = False

    @property
    def is_per_voice(self) -> bool:
        return self.per_voice

    def set_param(self, param_id: int, value: float) -> None:
        for node in self.nodes:
            node.set_param(param_id, value)

    def reset(self) -> None:
        for node in self.nodes:
            node.reset()

    def start_audio(
        self, audio_id: int, start_sample: int, duration_samples: int, gain: float
    ) -> None:
        # Audio playback is global; per-voice instances ignore it.
        if not self.per_voice:
            self.nodes[0].start_audio(audio_id, start_sample, duration_samples, gain)

    def stop_audio(self, audio_id: int) -> None:
        if not self.per_voice:
            self.nodes[0].stop_audio(audio_id)

    def load_audio(self, data: Any) -> None:
        if not self.per_voice:
            self.nodes[0].load_audio(data)

    def unload_audio(self, audio_id: int) -> None:
        if not self.per_voice:
            self.nodes[0].unload_audio(audio_id)


@dataclass
class GraphNode:
    """One node of the graph with the indices of the nodes feeding it."""

    instance: NodeInstance
    inputs: list[int] = field(default_factory=list)
    silent: bool = False


class Graph:
    """A DSP graph processed in dependency order."""

    def __init__(self, max_block: int, max_voices: int) -> None:
        self.nodes: list[GraphNode] = []
        self.buffers: list[NodeBuffer] = []
        self.output_node = 0
        self.max_block = max_block
        self.max_voices = max_voices
        self.sample_rate = 48_000.0
        # Session node ids to graph indices, filled in by compilation.
        self.id_to_index: dict[int, int] = {}
        self._eval_order: list[int] = []
        self._voices_to_deactivate: list[int] = []

    def __len__(self) -> int:
        return len(self.nodes)

    @property
    def eval_order(self) -> tuple[int, ...]:
        """The processing order computed by the last :meth:`prepare`."""
        return tuple(self._eval_order)

    def add_node(self, factory: NodeFactory) -> int:
        """Add a node built by ``factory`` and return its index."""
        channels = factory.num_channels()
        if factory.polyphony() is Polyphony.PER_VOICE:
            instance = NodeInstance(
                [factory.create() for _ in range(self.max_voices)], per_voice=True
            )
        else:
            instance = NodeInstance([factory.create()])

        index = len(self.nodes)
        self.nodes.append(GraphNode(instance))
        self.buffers.append(
            NodeBuffer(channels, self.max_block, instance.per_voice, self.max_voices)
        )
        return index

    def _check_index(self, index: int) -> None:
        if not 0 <= index < len(self.nodes):
            raise IndexError(f"node index {index} out of range")

    def connect(self, src: int, dst: int) -> None:
        """Add the edge ``src -> dst``; an existing edge is kept once."""
        self._check_index(src)
        self._check_index(dst)
        inputs = self.nodes[dst].inputs
        if src not in inputs:
            inputs.append(src)

    def prepare(self, sample_rate: float) -> None:
        """Prepare every node, clear buffers and compute the processing order."""
        self.sample_rate = sample_rate
        self._eval_order = self._topological_sort()
        for node, buf in zip(self.nodes, self.buffers):
            for instance in node.instance.nodes:
                instance.prepare(sample_rate, self.max_block)
            node.silent = False
            buf.clear()

    def _topological_sort(self) -> list[int]:
        count = len(self.nodes)
        dependents: list[list[int]] = [[] for _ in range(count)]
        for idx, node in enumerate(self.nodes):
            for source in node.inputs:
                dependents[source].append(idx)

        stack = [idx for idx, node in enumerate(self.nodes) if not node.inputs]
        processed = [False] * count
        order: list[int] = []

        while stack:
            idx = stack.pop()
            if processed[idx]:
                continue
            processed[idx] = True
            order.append(idx)
            for dependent in dependents[idx]:
                if not processed[dependent] and all(
                    processed[i] for i in self.nodes[dependent].inputs
                ):
                    stack.append(dependent)

        # A cycle leaves nodes unvisited; they are appended so nothing is dropped,
        # though their output will not be correct.
        order.extend(idx for idx, done in enumerate(processed) if not done)
        return order

    def process(
        self, frames: int, sample_pos: int, bpm: float, voices: VoiceSource
    ) -> None:
        """Process one block of ``frames`` frames."""
        if not 0 <= frames <= self.max_block:
            raise ValueError(f"{frames} frames exceed the block limit {self.max_block}")
        ctx = ProcessContext(frames, self.sample_rate, sample_pos, bpm)
        self._voices_to_deactivate.clear()
        for idx in self._eval_order:
            if self.nodes[idx].instance.per_voice:
                self._process_per_voice_node(idx, ctx, voices)
            else:
                self._process_global_node(idx, ctx)

    def _process_global_node(self, idx: int, ctx: ProcessContext) -> None:
        frames = ctx.frames
        graph_node = self.nodes[idx]
        inputs = graph_node.inputs
        out_buf = self.buffers[idx]
        out_buf.data[: out_buf.channels * frames] = 0.0

        if inputs and all(self.nodes[i].silent for i in inputs):
            graph_node.silent = True
            return

        input_views = []
        for input_idx in inputs:
            in_buf = self.buffers[input_idx]
            voice_size = in_buf.channels * frames
            if in_buf.is_per_voice:
                all_voices = in_buf.data[: self.max_voices * voice_size]
                in_buf.temp_voice[:voice_size] = all_voices.reshape(
                    self.max_voices, voice_size
                ).sum(axis=0)
                source = in_buf.temp_voice
            else:
                source = in_buf.data
            input_views.append(AudioBuffer(source[:voice_size], in_buf.channels, frames))

        output = out_buf.as_buffer(frames)
        silent = graph_node.instance.nodes[0].process(ctx, input_views, output)
        graph_node.silent = bool(silent)

    def _process_per_voice_node(
        self, idx: int, ctx: ProcessContext, voices: VoiceSource
    ) -> None:
        frames = ctx.frames
        graph_node = self.nodes[idx]
        out_buf = self.buffers[idx]
        out_buf.data[: self.max_voices * out_buf.channels * frames] = 0.0

        input_bufs = [self.buffers[i] for i in graph_node.inputs]
        all_silent = True

        for voice_ctx in voices.active_voices():
            voice_id = voice_ctx.id
            voice_ctx_full = ctx.with_voice(voice_ctx)

            input_views = []
            for in_buf in input_bufs:
                voice_size = in_buf.channels * frames
                offset = voice_id * voice_size if in_buf.is_per_voice else 0
                input_views.append(
                    AudioBuffer(
                        in_buf.data[offset : offset + voice_size], in_buf.channels, frames
                    )
                )

            output = out_buf.as_voice_buffer(voice_id, frames)
            silent = bool(
                graph_node.instance.nodes[voice_id].process(
                    voice_ctx_full, input_views, output
                )
            )

            # A voice is finished only when every per-voice node reports silence.
            pending = self._voices_to_deactivate
            if silent:
                if voice_id not in pending:
                    pending.append(voice_id)
            else:
                all_silent = False
                if voice_id in pending:
                    pos = pending.index(voice_id)
                    pending[pos] = pending[-1]
                    pending.pop()

        graph_node.silent = all_silent

    def _node_at(self, index: int) -> GraphNode | None:
        if 0 <= index < len(self.nodes):
            return self.nodes[index]
        return None

    def set_param(self, node_idx: int, param_id: int, value: float) -> None:
        """Set a parameter by graph index; unknown indices are ignored."""
        node = self._node_at(node_idx)
        if node is not None:
            node.instance.set_param(param_id, value)

    def set_param_by_id(self, node_id: int, param_id: int, value: float) -> None:
        """Set a parameter by session node id; unknown ids are ignored."""
        idx = self.id_to_index.get(node_id)
        if idx is not None:
            self.set_param(idx, param_id, value)

    def start_audio(
        self,
        node_idx: int,
        audio_id: int,
        start_sample: int,
        duration_samples: int,
        gain: float,
    ) -> None:
        node = self._node_at(node_idx)
        if node is not None:
            node.instance.start_audio(audio_id, start_sample, duration_samples, gain)

    def start_audio_by_id(
        self,
        node_id: int,
        audio_id: int,
        start_sample: int,
        duration_samples: int,
        gain: float,
    ) -> None:
        idx = self.id_to_index.get(node_id)
        if idx is not None:
            self.start_audio(idx, audio_id, start_sample, duration_samples, gain)

    def stop_audio(self, node_idx: int, audio_id: int) -> None:
        node = self._node_at(node_idx)
        if node is not None:
            node.instance.stop_audio(audio_id)

    def stop_audio_by_id(self, node_id: int, audio_id: int) -> None:
        idx = self.id_to_index.get(node_id)
        if idx is not None:
            self.stop_audio(idx, audio_id)

    def load_audio(self, node_idx: int, data: Any) -> None:
        node = self._node_at(node_idx)
        if node is not None:
            node.instance.load_audio(data)

    def unload_audio(self, node_idx: int, audio_id: int) -> None:
        node = self._node_at(node_idx)
        if node is not None:
            node.instance.unload_audio(audio_id)

    def load_audio_to_all(self, data: Any) -> None:
        """Hand shared audio data to every node; nodes that do not play audio ignore it."""
        for node in self.nodes:
            node.instance.load_audio(data)

    def reset(self) -> None:
        """Reset every node and silence every buffer (transport stop or seek)."""
        for node in self.nodes:
            node.instance.reset()
            node.silent = False
        for buf in self.buffers:
            buf.clear()

    def output_buffer(self, frames: int) -> np.ndarray | None:
        """The output node's first ``frames`` frames, planar, or None without one."""
        if not 0 <= self.output_node < len(self.buffers):
            return None
        buf = self.buffers[self.output_node]
        return buf.data[: buf.channels * frames]

    def drain_finished_voices(self) -> list[int]:
        """Return and forget the voices that went idle during the last block."""
        finished = list(self._voices_to_deactivate)
        self._voices_to_deactivate.clear()
        return finished