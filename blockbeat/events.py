"""MIDI events and the sinks that receive them.

Events are plain dataclasses. ``Event`` is the union of the three kinds the
engine produces; code that needs to tell them apart dispatches with
``isinstance`` on the union members rather than duck typing.

A sink accepts an event together with the beat it should sound at. It is fire
and forget - the engine never waits on or inspects the result.
"""

import dataclasses
import typing

import blockbeat.constants.velocity


ALL_NOTES_OFF = 123


@dataclasses.dataclass (frozen=True)
class NoteOn:

	"""
	Start of a note. ``detune`` is in cents.
	"""

	pitch: int
	velocity: int = blockbeat.constants.velocity.DEFAULT_VELOCITY
	channel: int = 1
	detune: int = 0

	def note_off (self) -> "NoteOff":

		"""Return the matching note-off for this note."""

		return NoteOff(pitch=self.pitch, channel=self.channel)


@dataclasses.dataclass (frozen=True)
class NoteOff:

	"""
	End of a note.
	"""

	pitch: int
	velocity: int = 0
	channel: int = 1


@dataclasses.dataclass (frozen=True)
class ControlChange:

	"""
	A MIDI continuous controller message.
	"""

	number: int
	value: int
	channel: int = 1

	@classmethod
	def all_notes_off (cls, channel: int = 1) -> "ControlChange":

		return cls(number=ALL_NOTES_OFF, value=0, channel=channel)


Event = typing.Union[NoteOn, NoteOff, ControlChange]


@typing.runtime_checkable
class EventSink (typing.Protocol):

	"""
	Receives events at computed beats.
	"""

	def emit_at (self, beat: float, event: Event) -> None:

		"""Accept an event to be sent at ``beat``."""

		...


@dataclasses.dataclass (frozen=True)
class ScheduledEvent:

	"""
	An event paired with the beat it was emitted for.
	"""

	beat: float
	event: Event


class EventRecorder:

	"""
	A sink that keeps everything it receives, in emission order.
	"""

	def __init__ (self) -> None:

		self.events: typing.List[ScheduledEvent] = []

	def emit_at (self, beat: float, event: Event) -> None:

		self.events.append(ScheduledEvent(beat=beat, event=event))

	def clear (self) -> None:

		self.events.clear()

	def note_ons (self) -> typing.List[ScheduledEvent]:

		"""Return only the note-on entries."""

		return [e for e in self.events if isinstance(e.event, NoteOn)]

	def note_offs (self) -> typing.List[ScheduledEvent]:

		"""Return only the note-off entries."""

		return [e for e in self.events if isinstance(e.event, NoteOff)]

	def beats (self, kind: typing.Optional[type] = None) -> typing.List[float]:

		"""Return the beats of every recorded event, optionally filtered by event type."""

		return [e.beat for e in self.events if kind is None or isinstance(e.event, kind)]


def describe_event (event: Event) -> str:

	"""Return a short human-readable description of an event, for trace logging."""

	if isinstance(event, NoteOn):
		detune = f" detune {event.detune:+d}" if event.detune else ""
		return f"NoteOn ch{event.channel} pitch {event.pitch} vel {event.velocity}{detune}"

	if isinstance(event, NoteOff):
		return f"NoteOff ch{event.channel} pitch {event.pitch}"

	if isinstance(event, ControlChange):
		return f"CC ch{event.channel} #{event.number} = {event.value}"

	raise TypeError(f"Unsupported event type: {type(event).__name__}")
