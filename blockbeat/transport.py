"""Transport windows: the host's view of time, one process block at a time.

A host calls its MIDI processor once per audio block and reports the range of
beats that block covers. ``WindowInfo`` carries that report. When the host is
cycling, a window may run past the loop's right edge - the beats beyond it
really belong at the start of the loop.

Two sources are provided for driving the engine without a host:

- ``ScriptedTransport`` replays a fixed list of windows (useful in tests and
  for reproducing a captured session).
- ``SimulatedTransport`` generates windows from a tempo, sample rate and block
  size, wrapping at a loop region and honouring play/stop.
"""

import dataclasses
import logging
import typing

import blockbeat.constants.durations
import blockbeat.exceptions


logger = logging.getLogger(__name__)


@dataclasses.dataclass (frozen=True)
class LoopRegion:

	"""
	The host's cycle bounds, ``[left, right)`` in beats.
	"""

	left: float
	right: float

	def __post_init__ (self) -> None:

		if self.right <= self.left:
			raise blockbeat.exceptions.InvalidConfiguration(
				f"Loop right edge ({self.right}) must be after the left edge ({self.left})"
			)

	@property
	def length (self) -> float:

		"""Length of the loop in beats."""

		return self.right - self.left


@dataclasses.dataclass (frozen=True)
class WindowInfo:

	"""
	One process block's timing report.

	``start`` and ``end`` bound the half-open window ``[start, end)``. ``loop`` is
	only meaningful while ``looping`` is true.
	"""

	start: float
	end: float
	playing: bool = True
	looping: bool = False
	loop: typing.Optional[LoopRegion] = None

	def __post_init__ (self) -> None:

		if self.looping and self.loop is None:
			raise blockbeat.exceptions.InvalidConfiguration("A looping window needs a loop region")

	@classmethod
	def stopped (cls, beat: float) -> "WindowInfo":

		"""Return the window a host reports while the transport is stopped."""

		return cls(start=beat, end=beat, playing=False)

	@property
	def length (self) -> float:

		"""Beats covered by the window, counting any wrapped portion."""

		return self.end - self.start

	@property
	def wraps (self) -> bool:

		"""True when the window crosses the loop's right edge."""

		return self.looping and self.loop is not None and self.end >= self.loop.right


@typing.runtime_checkable
class TransportWindowSource (typing.Protocol):

	"""
	Anything that can report the next process block's window.
	"""

	def poll (self) -> WindowInfo:

		"""Return the window for the next process block."""

		...


class ScriptedTransport:

	"""
	Replays a fixed sequence of windows.

	Once the script is exhausted, ``poll()`` keeps returning a stopped window at
	the last reported end beat.
	"""

	def __init__ (self, windows: typing.Iterable[WindowInfo]) -> None:

		self._windows: typing.List[WindowInfo] = list(windows)
		self._index = 0

	def __len__ (self) -> int:

		return len(self._windows)

	def __iter__ (self) -> typing.Iterator[WindowInfo]:

		while self._index < len(self._windows):
			yield self.poll()

	def poll (self) -> WindowInfo:

		"""Return the next scripted window."""

		if self._index >= len(self._windows):
			last = self._windows[-1].end if self._windows else blockbeat.constants.durations.FIRST_BEAT
			return WindowInfo.stopped(last)

		window = self._windows[self._index]
		self._index += 1

		return window

	@classmethod
	def contiguous (cls, start: float, block_beats: float, count: int) -> "ScriptedTransport":

		"""Build ``count`` back-to-back playing windows of ``block_beats`` each."""

		if block_beats <= 0:
			raise blockbeat.exceptions.InvalidConfiguration("Block length must be positive")

		windows = [
			WindowInfo(start=start + i * block_beats, end=start + (i + 1) * block_beats)
			for i in range(count)
		]

		return cls(windows)


class SimulatedTransport:

	"""
	Generates process-block windows the way a DAW transport would.

	Each call to ``poll()`` advances the playhead by one block. While a loop is
	set, a block that runs past the loop's right edge is reported unchanged
	(its ``end`` exceeds ``loop.right``) and the following block starts at the
	wrapped position. While stopped, the playhead holds still.

	Example:
		```python
		transport = blockbeat.transport.SimulatedTransport.from_audio(bpm=120, sample_rate=44100, block_size=512)
		transport.set_loop(1.0, 9.0)

		for _ in range(100):
			window = transport.poll()
		```
	"""

	def __init__ (
		self,
		block_beats: float,
		start_beat: float = blockbeat.constants.durations.FIRST_BEAT,
		loop: typing.Optional[LoopRegion] = None,
		playing: bool = True
	) -> None:

		"""
		Initialize the transport at a start beat with a fixed block length in beats.
		"""

		if block_beats <= 0:
			raise blockbeat.exceptions.InvalidConfiguration("Block length must be positive")

		self.block_beats = block_beats
		self.position = start_beat
		self.loop = loop
		self.playing = playing

	@classmethod
	def from_audio (cls, bpm: float, sample_rate: int = 44100, block_size: int = 512, **kwargs: typing.Any) -> "SimulatedTransport":

		"""Derive the block length in beats from tempo and audio buffer settings."""

		if bpm <= 0:
			raise blockbeat.exceptions.InvalidConfiguration("BPM must be positive")

		if sample_rate <= 0 or block_size <= 0:
			raise blockbeat.exceptions.InvalidConfiguration("Sample rate and block size must be positive")

		block_beats = (block_size / sample_rate) * (bpm / 60.0)

		return cls(block_beats=block_beats, **kwargs)

	def set_loop (self, left: float, right: float) -> None:

		"""Start cycling between two beats."""

		self.loop = LoopRegion(left, right)

	def clear_loop (self) -> None:

		"""Stop cycling."""

		self.loop = None

	def play (self) -> None:

		if not self.playing:
			logger.info(f"Transport playing from beat {self.position:.3f}")

		self.playing = True

	def stop (self) -> None:

		if self.playing:
			logger.info(f"Transport stopped at beat {self.position:.3f}")

		self.playing = False

	def locate (self, beat: float) -> None:

		"""Move the playhead."""

		self.position = beat

	def poll (self) -> WindowInfo:

		"""Return the next block's window and advance the playhead."""

		if not self.playing:
			return WindowInfo.stopped(self.position)

		start = self.position
		end = start + self.block_beats
		looping = self.loop is not None

		window = WindowInfo(start=start, end=end, playing=True, looping=looping, loop=self.loop)

		if self.loop is not None and end >= self.loop.right:
			self.position = self.loop.left + (end - self.loop.right)

		else:
			self.position = end

		return window

	def windows (self, count: int) -> typing.Iterator[WindowInfo]:

		"""Yield the next ``count`` windows."""

		for _ in range(count):
			yield self.poll()
