"""ADSR envelopes advanced in lockstep with the scheduler's scan.

An ``Envelope`` produces a level between 0.0 and 1.0 that rises over the
attack, falls to the sustain level over the decay, holds for the sustain
length and falls to zero over the release. Each ``process()`` call moves the
envelope's own clock on by one scan increment, so calling it once per scan
position keeps it phase-locked to the scheduler.

Lifecycle::

	idle -> (init) pending -> attack -> decay -> [sustain] -> release -> idle

Sustain is skipped when its length is zero, in which case the decay falls all
the way to zero. An idle envelope can be reused by calling ``init()`` again.

Levels are rounded to three decimals after every step and phase boundaries
are tested with ``>=``/``<=`` so rounding can never leave a phase unfinished.
"""

import enum
import logging
import typing

import blockbeat.constants.durations
import blockbeat.exceptions


logger = logging.getLogger(__name__)

_LEVEL_PRECISION = 3
_CURSOR_PRECISION = 9


class EnvelopePhase (enum.Enum):

	IDLE = "idle"
	PENDING = "pending"
	ATTACK = "attack"
	DECAY = "decay"
	SUSTAIN = "sustain"
	RELEASE = "release"


def _slope (length: float, rise: float) -> float:

	# A zero-length phase is crossed on its first step, so its slope is never used.
	if length <= 0:
		return 0.0

	return rise / length


class Envelope:

	"""
	One note's ADSR state machine.
	"""

	max_level = 1.0
	min_level = 0.0

	def __init__ (self, increment: float = blockbeat.constants.durations.SCAN_INCREMENT) -> None:

		if not increment > 0:
			raise blockbeat.exceptions.InvalidConfiguration("Envelope increment must be positive")

		self.increment = increment
		self._tolerance = increment / 2

		self.phase = EnvelopePhase.IDLE
		self.level = self.min_level
		self.start_beat: typing.Optional[float] = None
		self._configured = False
		self._ticks = 0

		self.attack_length = 0.0
		self.decay_length = 0.0
		self.sustain_length = 0.0
		self.sustain_level = 0.0
		self.release_length = 0.0

		self.attack_start = self.attack_end = 0.0
		self.decay_start = self.decay_end = 0.0
		self.sustain_start = self.sustain_end = 0.0
		self.release_start = self.release_end = 0.0

		self.attack_slope = 0.0
		self.decay_slope = 0.0
		self.release_slope = 0.0

	@property
	def cursor (self) -> float:

		"""The envelope's own clock, in beats."""

		if self.start_beat is None:
			return 0.0

		return round(self.start_beat + self._ticks * self.increment, _CURSOR_PRECISION)

	@property
	def elapsed (self) -> float:

		"""Beats since the note began."""

		if self.start_beat is None:
			return 0.0

		return round(self._ticks * self.increment, _CURSOR_PRECISION)

	@property
	def is_idle (self) -> bool:

		return self.phase is EnvelopePhase.IDLE

	@property
	def decay_target (self) -> float:

		return self.sustain_level if self.sustain_length > 0 else self.min_level

	def init (self, start_beat: float) -> None:

		"""Arm the envelope for a note that began at ``start_beat``."""

		self.start_beat = start_beat
		self.phase = EnvelopePhase.PENDING
		self.level = self.min_level
		self._configured = False
		self._ticks = 0

	def configure (self, attack: float, decay: float, sustain: float, sustain_level: float, release: float) -> None:

		"""Set the phase lengths (in beats) and the sustain level (0.0-1.0).

		Phase boundaries are laid out back to back from the note's start beat.
		"""

		if self.start_beat is None:
			raise blockbeat.exceptions.InvalidConfiguration("Call init() with the note's start beat before configure()")

		for name, value in (("attack", attack), ("decay", decay), ("sustain", sustain), ("release", release)):
			if value < 0:
				raise blockbeat.exceptions.InvalidConfiguration(f"{name.capitalize()} length cannot be negative, got {value}")

		if not self.min_level <= sustain_level <= self.max_level:
			raise blockbeat.exceptions.InvalidConfiguration(f"Sustain level must be within 0.0-1.0, got {sustain_level}")

		self.attack_length = attack
		self.decay_length = decay
		self.sustain_length = sustain
		self.sustain_level = sustain_level
		self.release_length = release

		self.attack_start = self.start_beat
		self.attack_end = self.attack_start + attack
		self.decay_start = self.attack_end
		self.decay_end = self.decay_start + decay
		self.sustain_start = self.decay_end
		self.sustain_end = self.sustain_start + sustain
		self.release_start = self.sustain_end
		self.release_end = self.release_start + release

		self.attack_slope = _slope(attack, self.max_level - self.min_level)
		self.decay_slope = _slope(decay, self.decay_target - self.max_level)
		self.release_slope = _slope(release, self.min_level - self.decay_target)

		self._configured = True

	@property
	def length (self) -> float:

		"""Total length of the envelope in beats."""

		return self.attack_length + self.decay_length + self.sustain_length + self.release_length

	def _reached (self, boundary: float) -> bool:

		return self.cursor >= boundary - self._tolerance

	def process (self) -> float:

		"""Compute the level at the current position, then advance by one increment."""

		if self.phase is EnvelopePhase.IDLE:
			return self.level

		if self.phase is EnvelopePhase.PENDING:

			if not self._configured:
				raise RuntimeError("Envelope processed before configure()")

			self.phase = EnvelopePhase.ATTACK

		cursor = self.cursor

		if self.phase is EnvelopePhase.ATTACK:
			level = round(self.attack_slope * (cursor - self.attack_start), _LEVEL_PRECISION)

			if self._reached(self.attack_end) or level >= self.max_level:
				level = self.max_level
				self.phase = EnvelopePhase.DECAY

		elif self.phase is EnvelopePhase.DECAY:
			target = self.decay_target
			level = round(self.max_level + self.decay_slope * (cursor - self.decay_start), _LEVEL_PRECISION)

			if self._reached(self.decay_end) or level <= target:
				level = target
				self.phase = EnvelopePhase.SUSTAIN if self.sustain_length > 0 else EnvelopePhase.RELEASE

		elif self.phase is EnvelopePhase.SUSTAIN:
			level = self.sustain_level

			if self._reached(self.sustain_end):
				self.phase = EnvelopePhase.RELEASE

		else:
			level = round(self.decay_target + self.release_slope * (cursor - self.release_start), _LEVEL_PRECISION)

			if self._reached(self.release_end) or level <= self.min_level:
				level = self.min_level
				self.phase = EnvelopePhase.IDLE
				logger.debug(f"Envelope started at {self.start_beat} finished at {cursor}")

		self.level = max(self.min_level, min(self.max_level, level))
		self._ticks += 1

		return self.level


class EnvelopeBank:

	"""
	The set of envelopes currently sounding. Finished envelopes drop out.
	"""

	def __init__ (self) -> None:

		self._envelopes: typing.List[Envelope] = []

	def __len__ (self) -> int:

		return len(self._envelopes)

	def __iter__ (self) -> typing.Iterator[Envelope]:

		return iter(list(self._envelopes))

	def add (self, envelope: Envelope) -> None:

		self._envelopes.append(envelope)

	def clear (self) -> None:

		self._envelopes.clear()

	def process_all (self) -> typing.List[typing.Tuple[Envelope, float]]:

		"""Advance every envelope one step and return ``(envelope, level)`` pairs.

		Envelopes that reach idle on this step are still reported, then removed.
		"""

		results = [(envelope, envelope.process()) for envelope in self._envelopes]
		self._envelopes = [envelope for envelope in self._envelopes if not envelope.is_idle]

		return results
