"""Gate incoming notes with a probability that follows the beat.

A 16-step pattern of percentages is walked at ``division`` while the
transport plays. Each incoming NoteOn is let through when a roll of 1-100 is
at most the current step's percentage plus ``skew``, so strong and weak beats
can be given different chances. ``start`` and ``length`` select which part of
the pattern is used; a ``length`` of 0 turns the gate off and lets everything
through. NoteOffs and other events always pass.
"""

import dataclasses
import logging
import random
import typing

import blockbeat.constants.durations
import blockbeat.devices
import blockbeat.events
import blockbeat.exceptions
import blockbeat.scheduler
import blockbeat.transport


logger = logging.getLogger(__name__)

PATTERN_STEPS = 16

PRESETS: typing.Dict[str, typing.List[int]] = {
	"Original":     [96, 90, 84, 78, 72, 66, 60, 54, 48, 42, 36, 30, 24, 18, 12, 6],
	"Reverse":      [6, 12, 18, 24, 30, 36, 42, 48, 54, 60, 66, 72, 78, 84, 90, 96],
	"Straight":     [96, 48, 72, 24, 84, 36, 60, 12, 90, 42, 66, 30, 78, 18, 54, 6],
	"Lead In on 4": [96, 24, 48, 72, 84, 12, 36, 60, 90, 30, 42, 66, 78, 6, 18, 54],
	"Synco1":       [48, 96, 24, 72, 36, 84, 12, 60, 42, 90, 30, 66, 18, 78, 6, 54],
}


@dataclasses.dataclass
class GateSettings:

	preset: str = "Straight"
	pattern: typing.Optional[typing.List[int]] = None
	start: int = 0
	length: int = PATTERN_STEPS
	skew: int = 0
	division: typing.Union[str, float] = "1/16"

	def __post_init__ (self) -> None:

		if self.pattern is None:
			if self.preset not in PRESETS:
				raise blockbeat.exceptions.InvalidConfiguration(f"Unknown preset {self.preset!r}. Available: {list(PRESETS)}")
			self.pattern = list(PRESETS[self.preset])

		if len(self.pattern) != PATTERN_STEPS:
			raise blockbeat.exceptions.InvalidConfiguration(f"Pattern needs {PATTERN_STEPS} steps, got {len(self.pattern)}")

		if any(not 0 <= value <= 100 for value in self.pattern):
			raise blockbeat.exceptions.InvalidConfiguration("Pattern probabilities must be within 0-100")

		if not 0 <= self.start < PATTERN_STEPS:
			raise blockbeat.exceptions.InvalidConfiguration(f"Start must be within 0-{PATTERN_STEPS - 1}, got {self.start}")

		if not 0 <= self.length <= PATTERN_STEPS:
			raise blockbeat.exceptions.InvalidConfiguration(f"Length must be within 0-{PATTERN_STEPS}, got {self.length}")

		if not -100 <= self.skew <= 100:
			raise blockbeat.exceptions.InvalidConfiguration(f"Skew must be within -100-100, got {self.skew}")


class ProbabilityGate (blockbeat.devices.BaseDevice[GateSettings]):

	settings_class = GateSettings

	def __init__ (self, settings: typing.Optional[GateSettings] = None, rng: typing.Optional[random.Random] = None) -> None:

		self.rng = rng or random.Random()
		self.scheduler = blockbeat.scheduler.BeatScheduler()
		self.current_probability = 100
		self.passed = 0
		self.blocked = 0

		super().__init__(settings)

	def _apply (self, settings: GateSettings) -> None:

		try:
			division = blockbeat.constants.durations.note_length(settings.division)
		except KeyError:
			raise blockbeat.exceptions.InvalidConfiguration(f"Unknown division {settings.division!r}") from None

		if not division > 0:
			raise blockbeat.exceptions.InvalidConfiguration("Division must be a positive length")

		self.division = division

	def apply_preset (self, name: str) -> None:

		"""Replace the whole pattern with a named preset."""

		if name not in PRESETS:
			raise blockbeat.exceptions.InvalidConfiguration(f"Unknown preset {name!r}. Available: {list(PRESETS)}")

		self.configure(preset=name, pattern=list(PRESETS[name]))

	def set_step (self, index: int, probability: int) -> None:

		"""Change one step of the pattern."""

		if not 0 <= index < PATTERN_STEPS:
			raise blockbeat.exceptions.InvalidConfiguration(f"Step index must be within 0-{PATTERN_STEPS - 1}, got {index}")

		pattern = list(self.settings.pattern or [])
		pattern[index] = probability
		self.configure(pattern=pattern)

	def probability_at (self, beat: float) -> int:

		"""Return the pattern's percentage for the division step that ``beat`` falls on."""

		settings = self.settings
		pattern = settings.pattern or []
		step = round((beat - blockbeat.constants.durations.FIRST_BEAT) / self.division)

		return pattern[(settings.start + step % settings.length) % PATTERN_STEPS]

	def reset (self) -> None:

		self.scheduler.reset()
		self.current_probability = 100

	def process_block (self, window: blockbeat.transport.WindowInfo, output: blockbeat.events.EventSink) -> None:

		if not window.playing:
			self.reset()
			return

		if self.settings.length == 0:
			return

		def update (beat: float) -> float:
			self.current_probability = self.probability_at(beat)
			return self.division

		self.scheduler.process(window, step=update)

	def handle_midi (self, event: blockbeat.events.Event, beat: float, output: blockbeat.events.EventSink) -> None:

		if self.settings.length == 0 or not isinstance(event, blockbeat.events.NoteOn):
			output.emit_at(beat, event)
			return

		gate = self.current_probability + self.settings.skew

		if self.rng.randint(1, 100) <= gate:
			self.passed += 1
			output.emit_at(beat, event)
			return

		self.blocked += 1
		logger.debug(f"Gate blocked pitch {event.pitch} at beat {beat:.3f} ({gate}%)")
