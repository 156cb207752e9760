"""Multi-voice Euclidean groove generator.

Each voice plays one pitch from its own Euclidean pattern. The patterns are
stepped through in one of four directions, and every onset is played with a
per-voice probability.

Meter:

- ``single`` - one scheduler at the sequencer ``rate`` steps every voice together.
- ``poly`` - each voice has its own scheduler stepped by its ``duration``, so
  voices with different durations drift against each other.

Resync (when patterns return to step 1):

- ``off`` - never; patterns just keep cycling.
- ``bar`` - on the first firing of every new bar.
- ``cycle`` - when the transport loops back to the start of the cycle.
- ``note_on`` - whenever a NoteOn arrives from upstream. The note is not played.

In poly meter a bar line or loop wrap resets each voice at that voice's
first firing on or after it.

Example:
	```python
	groove = blockbeat.devices.euclid.EuclidGroove(
		blockbeat.devices.euclid.EuclidSettings(voices=[
			blockbeat.devices.euclid.VoiceSettings(pitch=36, density=25),
			blockbeat.devices.euclid.VoiceSettings(pitch=42, density=75, direction="ping_pong"),
		]),
		rng=random.Random(1)
	)
	```
"""

import dataclasses
import logging
import math
import random
import typing

import blockbeat.constants.durations
import blockbeat.constants.velocity
import blockbeat.devices
import blockbeat.euclidean
import blockbeat.events
import blockbeat.exceptions
import blockbeat.scheduler
import blockbeat.transport


logger = logging.getLogger(__name__)

METERS = ("single", "poly")
RESYNC_MODES = ("off", "bar", "cycle", "note_on")


@dataclasses.dataclass
class VoiceSettings:

	"""
	One voice's sound and pattern.
	"""

	pitch: int = 60
	velocity: int = blockbeat.constants.velocity.DEFAULT_VELOCITY
	duration: typing.Union[str, float] = "1/16"
	steps: int = 16
	density: float = 50
	offset: int = 0
	direction: str = "forward"
	probability: int = 100
	channel: int = 1

	def __post_init__ (self) -> None:

		if not 0 <= self.pitch <= 127:
			raise blockbeat.exceptions.InvalidConfiguration(f"Pitch must be within 0-127, got {self.pitch}")

		if not 0 <= self.probability <= 100:
			raise blockbeat.exceptions.InvalidConfiguration(f"Probability must be within 0-100, got {self.probability}")


@dataclasses.dataclass
class EuclidSettings:

	rate: typing.Union[str, float] = "1/16"
	meter: str = "single"
	resync: str = "off"
	voices: typing.List[VoiceSettings] = dataclasses.field(default_factory=lambda: [VoiceSettings()])

	def __post_init__ (self) -> None:

		if self.meter not in METERS:
			raise blockbeat.exceptions.InvalidConfiguration(f"Unknown meter {self.meter!r}. Available: {list(METERS)}")

		if self.resync not in RESYNC_MODES:
			raise blockbeat.exceptions.InvalidConfiguration(f"Unknown resync mode {self.resync!r}. Available: {list(RESYNC_MODES)}")

		if not self.voices:
			raise blockbeat.exceptions.InvalidConfiguration("At least one voice is required")

		known = {field.name for field in dataclasses.fields(VoiceSettings)}

		for v in self.voices:
			if not isinstance(v, VoiceSettings):
				unknown = sorted(set(v) - known)
				if unknown:
					raise blockbeat.exceptions.InvalidConfiguration(f"Unknown voice settings: {unknown}")

		self.voices = [v if isinstance(v, VoiceSettings) else VoiceSettings(**v) for v in self.voices]


def _length (value: typing.Union[str, float], what: str) -> float:

	try:
		length = blockbeat.constants.durations.note_length(value)
	except KeyError:
		raise blockbeat.exceptions.InvalidConfiguration(f"Unknown note length {value!r} for {what}") from None

	if not length > 0:
		raise blockbeat.exceptions.InvalidConfiguration(f"{what.capitalize()} must be a positive length, got {value!r}")

	return length


class Voice:

	"""
	Runtime state for one voice: its pattern, step cursor and (in poly meter) scheduler.
	"""

	def __init__ (self, settings: VoiceSettings, rng: random.Random) -> None:

		self.settings = settings
		self.rng = rng
		self.duration = _length(settings.duration, "voice duration")
		self.pattern = blockbeat.euclidean.generate_euclidean_pattern(settings.steps, settings.density, settings.offset)
		self.cursor = blockbeat.euclidean.StepCursor(len(self.pattern), settings.direction, rng)
		self.scheduler = blockbeat.scheduler.BeatScheduler()
		self.resync_due = False

		logger.debug(f"Voice pitch {settings.pitch}: {''.join(str(s) for s in self.pattern)}")

	def play (self, beat: float, window: blockbeat.transport.WindowInfo, output: blockbeat.events.EventSink) -> bool:

		"""Sound the current step if it is an onset and passes the probability roll, then advance."""

		played = False

		if self.pattern[self.cursor.position] and self.rng.randint(1, 100) <= self.settings.probability:
			note = blockbeat.events.NoteOn(pitch=self.settings.pitch, velocity=self.settings.velocity, channel=self.settings.channel)
			output.emit_at(beat, note)
			output.emit_at(blockbeat.scheduler.note_off_beat(beat, self.duration, window), note.note_off())
			played = True

		self.cursor.advance()

		return played


class EuclidGroove (blockbeat.devices.BaseDevice[EuclidSettings]):

	settings_class = EuclidSettings

	def __init__ (self, settings: typing.Optional[EuclidSettings] = None, rng: typing.Optional[random.Random] = None) -> None:

		self.rng = rng or random.Random()
		self.scheduler = blockbeat.scheduler.BeatScheduler()
		self._last_bar: typing.Optional[int] = None
		self._last_beat: typing.Optional[float] = None

		super().__init__(settings)

	def _apply (self, settings: EuclidSettings) -> None:

		rate = _length(settings.rate, "sequencer rate")
		voices = [Voice(voice_settings, self.rng) for voice_settings in settings.voices]

		self.rate = rate
		self.voices = voices

	def resync (self) -> None:

		"""Send every voice back to the first step of its pattern."""

		for voice in self.voices:
			voice.cursor.reset()
			voice.resync_due = False

	def reset (self) -> None:

		self.scheduler.reset()

		for voice in self.voices:
			voice.scheduler.reset()
			voice.resync_due = False

		self._last_bar = None
		self._last_beat = None

	def handle_midi (self, event: blockbeat.events.Event, beat: float, output: blockbeat.events.EventSink) -> None:

		if isinstance(event, blockbeat.events.NoteOn):
			# Incoming notes are never played; they only serve as a resync signal.
			if self.settings.resync == "note_on":
				self.resync()
			return

		output.emit_at(beat, event)

	def process_block (self, window: blockbeat.transport.WindowInfo, output: blockbeat.events.EventSink) -> None:

		if not window.playing:
			self.reset()
			return

		if self.settings.meter == "single":

			def fire_all (beat: float) -> float:
				self._check_resync(beat, window)
				for voice in self.voices:
					voice.play(beat, window, output)
				return self.rate

			self.scheduler.process(window, step=fire_all)
			return

		tolerance = blockbeat.constants.durations.SCAN_INCREMENT / 2
		points = self._resync_points(window)

		for voice in self.voices:
			pending = list(points)

			def fire_voice (beat: float, voice: Voice = voice, pending: typing.List[float] = pending) -> float:

				offset = _window_offset(beat, window)

				while pending and pending[0] <= offset + tolerance:
					pending.pop(0)
					voice.resync_due = True

				if voice.resync_due:
					voice.cursor.reset()
					voice.resync_due = False

				voice.play(beat, window, output)
				return voice.duration

			voice.scheduler.process(window, step=fire_voice)

			# A resync after this voice's last firing applies to its next one.
			if pending:
				voice.resync_due = True

	def _resync_points (self, window: blockbeat.transport.WindowInfo) -> typing.List[float]:

		"""Scan the window once in time order and return where resyncs fall, as offsets from its start.

		In poly meter every voice scans the window on its own scheduler, one
		after another, so the bar lines and loop wraps are found here and each
		voice resyncs at its first firing at or after them.
		"""

		points: typing.List[float] = []

		if self.settings.resync not in ("bar", "cycle"):
			return points

		def check (cursor: float) -> None:
			if self._resync_due(cursor, window):
				points.append(_window_offset(cursor, window))

		self.scheduler.process(window, step=self.rate, on_cursor=check)

		return points

	def _check_resync (self, beat: float, window: blockbeat.transport.WindowInfo) -> None:

		if self._resync_due(beat, window):
			self.resync()

	def _resync_due (self, beat: float, window: blockbeat.transport.WindowInfo) -> bool:

		mode = self.settings.resync
		due = False

		if mode == "bar":
			bar = math.floor((beat - blockbeat.constants.durations.FIRST_BEAT) / blockbeat.constants.durations.BEATS_PER_BAR + 1e-9)

			if self._last_bar is not None and bar != self._last_bar:
				logger.debug(f"Bar resync at beat {beat:.3f}")
				due = True

			self._last_bar = bar

		elif mode == "cycle":
			tolerance = blockbeat.constants.durations.SCAN_INCREMENT / 2

			if window.looping and self._last_beat is not None and beat < self._last_beat - tolerance:
				logger.debug(f"Cycle resync at beat {beat:.3f}")
				due = True

			self._last_beat = beat

		return due


def _window_offset (beat: float, window: blockbeat.transport.WindowInfo) -> float:

	"""Distance of ``beat`` from the window start along the played timeline, counting a folded beat after the loop's right edge."""

	offset = beat - window.start

	if offset < -blockbeat.constants.durations.SCAN_INCREMENT / 2 and window.looping and window.loop is not None:
		offset = (window.loop.right - window.start) + (beat - window.loop.left)

	return offset
