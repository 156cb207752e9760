import pytest

import blockbeat.events


def test_note_off_matches_note_on () -> None:

	"""A note-off keeps the pitch and channel of its note-on."""

	note = blockbeat.events.NoteOn(pitch=64, velocity=90, channel=3, detune=12)

	assert note.note_off() == blockbeat.events.NoteOff(pitch=64, channel=3)


def test_all_notes_off () -> None:

	"""All-notes-off is controller 123 with value 0."""

	assert blockbeat.events.ControlChange.all_notes_off() == blockbeat.events.ControlChange(123, 0)


def test_recorder_filters_by_kind (recorder: blockbeat.events.EventRecorder) -> None:

	"""The recorder keeps emission order and can filter by event type."""

	recorder.emit_at(1.0, blockbeat.events.NoteOn(60))
	recorder.emit_at(1.5, blockbeat.events.NoteOff(60))
	recorder.emit_at(2.0, blockbeat.events.ControlChange(1, 64))

	assert recorder.beats() == [1.0, 1.5, 2.0]
	assert [e.beat for e in recorder.note_ons()] == [1.0]
	assert [e.beat for e in recorder.note_offs()] == [1.5]
	assert recorder.beats(blockbeat.events.ControlChange) == [2.0]

	recorder.clear()

	assert recorder.events == []


def test_recorder_is_an_event_sink (recorder: blockbeat.events.EventRecorder) -> None:

	"""The recorder satisfies the sink protocol."""

	assert isinstance(recorder, blockbeat.events.EventSink)


@pytest.mark.parametrize("event, text", [
	(blockbeat.events.NoteOn(60, 100, 2), "NoteOn ch2 pitch 60 vel 100"),
	(blockbeat.events.NoteOn(60, 100, 1, -5), "NoteOn ch1 pitch 60 vel 100 detune -5"),
	(blockbeat.events.NoteOff(61), "NoteOff ch1 pitch 61"),
	(blockbeat.events.ControlChange(7, 99), "CC ch1 #7 = 99"),
])
def test_describe_event (event: blockbeat.events.Event, text: str) -> None:

	"""Events have short readable descriptions."""

	assert blockbeat.events.describe_event(event) == text


def test_describe_unknown_event_raises () -> None:

	"""Anything that is not an event is rejected."""

	with pytest.raises(TypeError):
		blockbeat.events.describe_event("note")
