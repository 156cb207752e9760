"""Write recorded events to a standard MIDI file."""

import logging
import typing

import mido

import blockbeat.events


logger = logging.getLogger(__name__)

TICKS_PER_BEAT = 480

# Detune is stored in cents; the pitch wheel is assumed to span +/- 2 semitones.
_PITCHWHEEL_RANGE_CENTS = 200

RecordedEvent = typing.Tuple[float, blockbeat.events.Event]


def _event_order (item: RecordedEvent) -> typing.Tuple[float, int]:

	position, event = item

	# Note-offs first, so a note ending and restarting on the same tick is not cut short.
	if isinstance(event, blockbeat.events.NoteOff):
		return (position, 0)

	return (position, 1)


def _pitchwheel (detune: int) -> int:

	value = round(detune / _PITCHWHEEL_RANGE_CENTS * 8191)

	return max(-8192, min(8191, value))


def to_messages (recorded_events: typing.Iterable[RecordedEvent]) -> typing.List[typing.Tuple[float, mido.Message]]:

	"""Convert ``(position, event)`` pairs to mido messages, sorted by position.

	Channels run 1-16 on events and 0-15 in MIDI. A detuned note is preceded by
	a pitch-wheel message on its channel; the wheel is returned to centre
	before the next undetuned note.
	"""

	messages: typing.List[typing.Tuple[float, mido.Message]] = []
	wheel: typing.Dict[int, int] = {}

	for position, event in sorted(recorded_events, key=_event_order):

		channel = event.channel - 1

		if isinstance(event, blockbeat.events.NoteOn):
			bend = _pitchwheel(event.detune)

			if wheel.get(channel, 0) != bend:
				messages.append((position, mido.Message('pitchwheel', channel=channel, pitch=bend)))
				wheel[channel] = bend

			messages.append((position, mido.Message('note_on', channel=channel, note=event.pitch, velocity=event.velocity)))

		elif isinstance(event, blockbeat.events.NoteOff):
			messages.append((position, mido.Message('note_off', channel=channel, note=event.pitch, velocity=event.velocity)))

		elif isinstance(event, blockbeat.events.ControlChange):
			messages.append((position, mido.Message('control_change', channel=channel, control=event.number, value=event.value)))

		else:
			raise TypeError(f"Cannot write {type(event).__name__} to a MIDI file")

	return messages


def build_midi_file (recorded_events: typing.Iterable[RecordedEvent], bpm: float = 120, ticks_per_beat: int = TICKS_PER_BEAT) -> mido.MidiFile:

	"""Build a single-track type 1 MIDI file with a tempo event at the start."""

	mid = mido.MidiFile(type=1)
	mid.ticks_per_beat = ticks_per_beat
	track = mido.MidiTrack()
	mid.tracks.append(track)

	track.append(mido.MetaMessage('set_tempo', tempo=mido.bpm2tempo(bpm), time=0))

	last_tick = 0

	for position, message in to_messages(recorded_events):
		tick = int(round(position * ticks_per_beat))

		# Sorted input only goes backwards through rounding.
		delta_ticks = max(0, tick - last_tick)

		track.append(message.copy(time=delta_ticks))
		last_tick = max(last_tick, tick)

	track.append(mido.MetaMessage('end_of_track', time=0))

	return mid


def save_recording (recorded_events: typing.Sequence[RecordedEvent], filename: str, bpm: float = 120, ticks_per_beat: int = TICKS_PER_BEAT) -> bool:

	"""Save recorded events to ``filename``. Returns False when nothing was written."""

	if not recorded_events:
		logger.warning("Nothing recorded - no MIDI file written")
		return False

	logger.info(f"Saving MIDI recording ({len(recorded_events)} events) to {filename}...")

	mid = build_midi_file(recorded_events, bpm=bpm, ticks_per_beat=ticks_per_beat)

	try:
		mid.save(filename)
		logger.info(f"Saved {filename}")
	except Exception as e:
		logger.error(f"Failed to save MIDI recording: {e}")
		return False

	return True
