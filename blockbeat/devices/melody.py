"""Weighted random melody generator.

At every firing the device first decides between a note and a rest, then
draws a length from the matching pool. Notes take their pitch from a
scale-weighted pool, so the root and scale tones come up more often than
chromatic ones. The drawn length becomes the scheduler step, so the melody's
rhythm comes entirely from the pools.
"""

import dataclasses
import logging
import random
import typing

import blockbeat.constants.durations
import blockbeat.constants.velocity
import blockbeat.devices
import blockbeat.events
import blockbeat.exceptions
import blockbeat.scales
import blockbeat.scheduler
import blockbeat.transport
import blockbeat.weighted_pool


logger = logging.getLogger(__name__)

NOTE = "note"
REST = "rest"

LengthWeights = typing.List[typing.Tuple[int, typing.Union[str, float]]]


@dataclasses.dataclass
class MelodySettings:

	root: int = 0
	mode: str = "ionian"
	octave: int = 3
	root_weight: int = blockbeat.scales.ROOT_WEIGHT
	diatonic_weight: int = blockbeat.scales.DIATONIC_WEIGHT
	nondiatonic_weight: int = blockbeat.scales.NONDIATONIC_WEIGHT
	velocity: int = blockbeat.constants.velocity.DEFAULT_VELOCITY
	channel: int = 1
	note_weight: int = 80
	rest_weight: int = 20
	note_lengths: LengthWeights = dataclasses.field(default_factory=lambda: [(50, "1/8"), (30, "1/4"), (20, "1/16")])
	rest_lengths: LengthWeights = dataclasses.field(default_factory=lambda: [(100, "1/8")])

	def __post_init__ (self) -> None:

		if not 0 <= self.root <= 11:
			raise blockbeat.exceptions.InvalidConfiguration(f"Root must be a pitch class within 0-11, got {self.root}")

		self.note_lengths = [tuple(item) for item in self.note_lengths]
		self.rest_lengths = [tuple(item) for item in self.rest_lengths]


def _length_pool (items: LengthWeights, what: str) -> blockbeat.weighted_pool.WeightedPool[float]:

	resolved: typing.List[typing.Tuple[int, float]] = []

	for weight, name in items:

		try:
			length = blockbeat.constants.durations.note_length(name)
		except KeyError:
			raise blockbeat.exceptions.InvalidConfiguration(f"Unknown {what} length {name!r}") from None

		if not length > 0:
			raise blockbeat.exceptions.InvalidConfiguration(f"{what.capitalize()} lengths must be positive, got {name!r}")

		resolved.append((weight, length))

	return blockbeat.weighted_pool.WeightedPool.build(resolved)


class WeightedMelody (blockbeat.devices.BaseDevice[MelodySettings]):

	settings_class = MelodySettings

	def __init__ (self, settings: typing.Optional[MelodySettings] = None, rng: typing.Optional[random.Random] = None) -> None:

		self.rng = rng or random.Random()
		self.scheduler = blockbeat.scheduler.BeatScheduler()

		super().__init__(settings)

	def _apply (self, settings: MelodySettings) -> None:

		pitches = blockbeat.scales.pitch_weight_pool(
			settings.root,
			settings.mode,
			settings.octave,
			root_weight=settings.root_weight,
			diatonic_weight=settings.diatonic_weight,
			nondiatonic_weight=settings.nondiatonic_weight
		)

		choices: typing.List[typing.Tuple[int, str]] = [(settings.note_weight, NOTE)]

		if settings.rest_weight > 0:
			choices.append((settings.rest_weight, REST))

		self.pitch_pool = pitches
		self.choice_pool = blockbeat.weighted_pool.WeightedPool.build(choices)
		self.note_length_pool = _length_pool(settings.note_lengths, "note")
		self.rest_length_pool = _length_pool(settings.rest_lengths, "rest") if settings.rest_weight > 0 else None

	def reset (self) -> None:

		self.scheduler.reset()

	def process_block (self, window: blockbeat.transport.WindowInfo, output: blockbeat.events.EventSink) -> None:

		if not window.playing:
			self.reset()
			return

		self.scheduler.process(window, step=lambda beat: self._fire(beat, window, output))

	def _fire (self, beat: float, window: blockbeat.transport.WindowInfo, output: blockbeat.events.EventSink) -> float:

		if self.choice_pool.draw(self.rng) == REST and self.rest_length_pool is not None:
			length = self.rest_length_pool.draw(self.rng)
			logger.debug(f"Rest of {length} beats at {beat:.3f}")
			return length

		length = self.note_length_pool.draw(self.rng)
		note = blockbeat.events.NoteOn(
			pitch=self.pitch_pool.draw(self.rng),
			velocity=self.settings.velocity,
			channel=self.settings.channel
		)

		output.emit_at(beat, note)
		output.emit_at(blockbeat.scheduler.note_off_beat(beat, length, window), note.note_off())

		return length
