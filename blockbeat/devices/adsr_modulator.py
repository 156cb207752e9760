"""Re-trigger held notes with ADSR-shaped velocity, detune and length.

Every NoteOn that arrives starts its own envelope. The note is not passed
through; instead it is played again every time the envelope's clock reaches
the next retrigger point, with the envelope level (0.0-1.0) interpolating
each enabled target between its minimum and maximum:

- velocity - how hard each repeat is played.
- detune - pitch offset in cents.
- length - how long each repeat lasts, which is also the gap to the next one.

When the envelope finishes, the note stops repeating. Incoming NoteOffs are
swallowed since the envelope decides when the note ends.
"""

import dataclasses
import logging
import typing

import blockbeat.constants.durations
import blockbeat.constants.velocity
import blockbeat.devices
import blockbeat.envelope
import blockbeat.events
import blockbeat.exceptions
import blockbeat.scheduler
import blockbeat.transport


logger = logging.getLogger(__name__)


@dataclasses.dataclass
class AdsrSettings:

	attack: typing.Union[str, float] = "1/8"
	decay: typing.Union[str, float] = "1/8"
	sustain: typing.Union[str, float] = "1/8"
	sustain_level: float = 0.5
	release: typing.Union[str, float] = "1/8"

	velocity_enabled: bool = True
	velocity_min: int = blockbeat.constants.velocity.MIN_VELOCITY
	velocity_max: int = blockbeat.constants.velocity.MAX_VELOCITY

	length_enabled: bool = False
	length: typing.Union[str, float] = "1/8"
	length_min: typing.Union[str, float] = "1/32"
	length_max: typing.Union[str, float] = "1/8"

	detune_enabled: bool = True
	detune_min: int = blockbeat.constants.velocity.MIN_DETUNE
	detune_max: int = blockbeat.constants.velocity.MAX_DETUNE

	def __post_init__ (self) -> None:

		if not 0.0 <= self.sustain_level <= 1.0:
			raise blockbeat.exceptions.InvalidConfiguration(f"Sustain level must be within 0.0-1.0, got {self.sustain_level}")

		for low, high, name in (
			(self.velocity_min, self.velocity_max, "velocity"),
			(self.detune_min, self.detune_max, "detune"),
		):
			if low > high:
				raise blockbeat.exceptions.InvalidConfiguration(f"Minimum {name} {low} is above maximum {high}")


def _beats (value: typing.Union[str, float], what: str) -> float:

	try:
		length = blockbeat.constants.durations.note_length(value)
	except KeyError:
		raise blockbeat.exceptions.InvalidConfiguration(f"Unknown note length {value!r} for {what}") from None

	if length < 0:
		raise blockbeat.exceptions.InvalidConfiguration(f"{what.capitalize()} cannot be negative, got {value!r}")

	return length


def _lerp (low: float, high: float, level: float) -> float:

	return low + (high - low) * level


@dataclasses.dataclass
class ModulatedNote:

	"""
	A held note together with its envelope and the envelope time of its next repeat.
	"""

	note: blockbeat.events.NoteOn
	envelope: blockbeat.envelope.Envelope
	next_repeat: float = 0.0


class AdsrModulator (blockbeat.devices.BaseDevice[AdsrSettings]):

	settings_class = AdsrSettings

	def __init__ (self, settings: typing.Optional[AdsrSettings] = None, increment: float = blockbeat.constants.durations.SCAN_INCREMENT) -> None:

		self.increment = increment
		self.scheduler = blockbeat.scheduler.BeatScheduler(increment=increment)
		self.bank = blockbeat.envelope.EnvelopeBank()
		self._notes: typing.Dict[blockbeat.envelope.Envelope, ModulatedNote] = {}
		self._pending: typing.List[blockbeat.events.NoteOn] = []

		super().__init__(settings)

	def _apply (self, settings: AdsrSettings) -> None:

		phases = (
			_beats(settings.attack, "attack"),
			_beats(settings.decay, "decay"),
			_beats(settings.sustain, "sustain"),
			_beats(settings.release, "release"),
		)
		lengths = (
			_beats(settings.length, "note length"),
			_beats(settings.length_min, "minimum note length"),
			_beats(settings.length_max, "maximum note length"),
		)

		if lengths[1] > lengths[2]:
			raise blockbeat.exceptions.InvalidConfiguration("Minimum note length is above maximum note length")

		self.attack, self.decay, self.sustain, self.release = phases
		self.length, self.length_min, self.length_max = lengths

	@property
	def active_notes (self) -> typing.List[ModulatedNote]:

		return [self._notes[envelope] for envelope in self.bank]

	def reset (self) -> None:

		self.scheduler.reset()
		self.bank.clear()
		self._notes.clear()
		self._pending.clear()

	def handle_midi (self, event: blockbeat.events.Event, beat: float, output: blockbeat.events.EventSink) -> None:

		if isinstance(event, blockbeat.events.NoteOn):
			# The envelope is laid out on the next scan position.
			self._pending.append(event)
			return

		if isinstance(event, blockbeat.events.NoteOff):
			return

		output.emit_at(beat, event)

	def process_block (self, window: blockbeat.transport.WindowInfo, output: blockbeat.events.EventSink) -> None:

		if not window.playing:
			self.reset()
			return

		# The scheduler's own trigger is unused; only the scan drives the envelopes.
		self.scheduler.process(
			window,
			step=blockbeat.constants.durations.SCAN_INCREMENT,
			on_cursor=lambda cursor: self._tick(cursor, window, output)
		)

	def _start_pending (self, cursor: float) -> None:

		for note in self._pending:
			envelope = blockbeat.envelope.Envelope(increment=self.increment)
			envelope.init(cursor)
			envelope.configure(self.attack, self.decay, self.sustain, self.settings.sustain_level, self.release)
			self.bank.add(envelope)
			self._notes[envelope] = ModulatedNote(note=note, envelope=envelope)
			logger.debug(f"Envelope started for pitch {note.pitch} at beat {cursor:.3f}")

		self._pending.clear()

	def _tick (self, cursor: float, window: blockbeat.transport.WindowInfo, output: blockbeat.events.EventSink) -> None:

		if self._pending:
			self._start_pending(cursor)

		if not self._notes:
			return

		tolerance = self.increment / 2
		due = [m for m in self.active_notes if m.envelope.elapsed >= m.next_repeat - tolerance]

		for envelope, _ in self.bank.process_all():
			if envelope.is_idle:
				self._notes.pop(envelope, None)

		for modulated in due:
			if modulated.envelope.is_idle:
				continue

			self._repeat(modulated, modulated.envelope.level, cursor, window, output)

	def _repeat (
		self,
		modulated: ModulatedNote,
		level: float,
		cursor: float,
		window: blockbeat.transport.WindowInfo,
		output: blockbeat.events.EventSink
	) -> None:

		settings = self.settings
		source = modulated.note

		velocity = source.velocity

		if settings.velocity_enabled:
			# Velocity 0 would read as a note-off downstream.
			velocity = max(1, round(_lerp(settings.velocity_min, settings.velocity_max, level)))

		detune = round(_lerp(settings.detune_min, settings.detune_max, level)) if settings.detune_enabled else source.detune
		length = _lerp(self.length_min, self.length_max, level) if settings.length_enabled else self.length

		note = dataclasses.replace(source, velocity=velocity, detune=detune)
		output.emit_at(cursor, note)
		output.emit_at(blockbeat.scheduler.note_off_beat(cursor, length, window), note.note_off())

		modulated.next_repeat += max(length, self.increment)
