"""Weighted random chord progressions.

A Markov chain walks a progression map of roman numerals, one chord per
``chord_length``, and each chord is played as the diatonic triad of its
degree in the configured key.
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
import blockbeat.markov_chain
import blockbeat.scales
import blockbeat.scheduler
import blockbeat.transport


logger = logging.getLogger(__name__)


# Functional harmony in a major key: tonic, predominant, dominant.
DEFAULT_PROGRESSION: typing.Dict[str, typing.Any] = {
	"START": "I",
	"I":   [(3, "ii"), (2, "iii"), (4, "IV"), (4, "V"), (3, "vi")],
	"ii":  [(4, "V"), (1, "vii°"), (1, "IV")],
	"iii": [(3, "vi"), (2, "IV")],
	"IV":  [(3, "I"), (2, "ii"), (4, "V")],
	"V":   [(6, "I"), (2, "vi"), (1, "IV")],
	"vi":  [(3, "ii"), (3, "IV"), (2, "V")],
	"vii°": [(4, "I"), (1, "iii")],
}


@dataclasses.dataclass
class ProgressionSettings:

	progression: typing.Dict[str, typing.Any] = dataclasses.field(default_factory=lambda: dict(DEFAULT_PROGRESSION))
	root: int = 0
	mode: str = "ionian"
	octave: int = 3
	chord_length: typing.Union[str, float] = "1 bar"
	velocity: int = blockbeat.constants.velocity.DEFAULT_CHORD_VELOCITY
	channel: int = 1


class ChordProgression (blockbeat.devices.BaseDevice[ProgressionSettings]):

	settings_class = ProgressionSettings

	def __init__ (self, settings: typing.Optional[ProgressionSettings] = None, rng: typing.Optional[random.Random] = None) -> None:

		self.rng = rng or random.Random()
		self.scheduler = blockbeat.scheduler.BeatScheduler()
		self.history: typing.List[str] = []
		self._started = False

		super().__init__(settings)

	def _apply (self, settings: ProgressionSettings) -> None:

		try:
			chord_length = blockbeat.constants.durations.note_length(settings.chord_length)
		except KeyError:
			raise blockbeat.exceptions.InvalidConfiguration(f"Unknown chord length {settings.chord_length!r}") from None

		if not chord_length > 0:
			raise blockbeat.exceptions.InvalidConfiguration("Chord length must be positive")

		chain = blockbeat.markov_chain.MarkovChain.from_progression_map(settings.progression, rng=self.rng)

		# Every chord must be playable before any of it is used.
		voicings = {
			chord: blockbeat.scales.roman_triad(chord, settings.root, settings.mode, settings.octave)
			for chord in chain.transitions
		}
		voicings.setdefault(chain.initial_state, blockbeat.scales.roman_triad(chain.initial_state, settings.root, settings.mode, settings.octave))

		self.chord_length = chord_length
		self.chain = chain
		self.voicings = voicings
		self._started = False

	def reset (self) -> None:

		self.scheduler.reset()
		self.chain.reset()
		self._started = False

	def next_chord (self) -> str:

		"""Return the chord to play next, starting from the map's first chord."""

		if not self._started:
			self._started = True
			chord = self.chain.state
		else:
			chord = self.chain.step()

		self.history.append(chord)

		return chord

	def process_block (self, window: blockbeat.transport.WindowInfo, output: blockbeat.events.EventSink) -> None:

		if not window.playing:
			self.reset()
			return

		self.scheduler.process(window, step=lambda beat: self._fire(beat, window, output))

	def _fire (self, beat: float, window: blockbeat.transport.WindowInfo, output: blockbeat.events.EventSink) -> float:

		chord = self.next_chord()
		off_beat = blockbeat.scheduler.note_off_beat(beat, self.chord_length, window)

		logger.debug(f"Chord {chord} at beat {beat:.3f}")

		for pitch in self.voicings[chord]:
			note = blockbeat.events.NoteOn(pitch=pitch, velocity=self.settings.velocity, channel=self.settings.channel)
			output.emit_at(beat, note)
			output.emit_at(off_beat, note.note_off())

		return self.chord_length
