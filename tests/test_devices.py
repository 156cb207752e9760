import random
import typing

import pytest

import blockbeat.device_registry
import blockbeat.devices
import blockbeat.devices.adsr_modulator
import blockbeat.devices.euclid
import blockbeat.devices.melody
import blockbeat.devices.probability_gate
import blockbeat.devices.progression
import blockbeat.events
import blockbeat.exceptions
import blockbeat.scales
import blockbeat.transport


def _play (device: typing.Any, windows: typing.Iterable[blockbeat.transport.WindowInfo], output: typing.Any) -> None:

	for window in windows:
		device.process_block(window, output)


# ---------------------------------------------------------------------------
# AdsrModulator
# ---------------------------------------------------------------------------

def _modulator (**kwargs: typing.Any) -> blockbeat.devices.adsr_modulator.AdsrModulator:

	settings = {"attack": 0.1, "decay": 0.1, "sustain": 0.1, "sustain_level": 0.5, "release": 0.1, "length": 0.05}
	settings.update(kwargs)

	return blockbeat.devices.adsr_modulator.AdsrModulator(blockbeat.devices.adsr_modulator.AdsrSettings(**settings))


def test_adsr_repeats_note_over_the_envelope (recorder: blockbeat.events.EventRecorder) -> None:

	"""A held note repeats at the set length until the envelope ends."""

	modulator = _modulator()

	modulator.handle_midi(blockbeat.events.NoteOn(60, 100), 1.0, recorder)
	_play(modulator, blockbeat.transport.ScriptedTransport.contiguous(1.0, 0.125, 8), recorder)

	notes = recorder.note_ons()

	assert [e.beat for e in notes] == pytest.approx([1.0 + i * 0.05 for i in range(8)])
	assert all(e.event.pitch == 60 for e in notes)
	assert len(modulator.bank) == 0


def test_adsr_velocity_and_detune_follow_level (recorder: blockbeat.events.EventRecorder) -> None:

	"""Velocity and detune are interpolated by the envelope level."""

	modulator = _modulator()

	modulator.handle_midi(blockbeat.events.NoteOn(60, 100), 1.0, recorder)
	_play(modulator, blockbeat.transport.ScriptedTransport.contiguous(1.0, 0.125, 8), recorder)

	velocities = [e.event.velocity for e in recorder.note_ons()]
	detunes = [e.event.detune for e in recorder.note_ons()]

	assert velocities == [1, 64, 127, 95, 64, 64, 64, 32]
	assert detunes[0] == -127
	assert detunes[2] == 127
	assert detunes[4] == 0


def test_adsr_disabled_targets_keep_source_values (recorder: blockbeat.events.EventRecorder) -> None:

	"""Targets that are switched off keep the incoming note's values."""

	modulator = _modulator(velocity_enabled=False, detune_enabled=False)

	modulator.handle_midi(blockbeat.events.NoteOn(60, 77, detune=5), 1.0, recorder)
	_play(modulator, blockbeat.transport.ScriptedTransport.contiguous(1.0, 0.125, 8), recorder)

	assert {e.event.velocity for e in recorder.note_ons()} == {77}
	assert {e.event.detune for e in recorder.note_ons()} == {5}


def test_adsr_length_modulation_spreads_repeats (recorder: blockbeat.events.EventRecorder) -> None:

	"""With length modulation the gap between repeats grows with the level."""

	modulator = _modulator(length_enabled=True, length_min=0.02, length_max=0.1)

	modulator.handle_midi(blockbeat.events.NoteOn(60), 1.0, recorder)
	_play(modulator, blockbeat.transport.ScriptedTransport.contiguous(1.0, 0.125, 8), recorder)

	beats = [e.beat for e in recorder.note_ons()]
	gaps = [later - earlier for earlier, later in zip(beats, beats[1:])]

	assert gaps[0] == pytest.approx(0.02)
	assert max(gaps) > 0.05


def test_adsr_filters_incoming_events (recorder: blockbeat.events.EventRecorder) -> None:

	"""NoteOffs are swallowed and other events pass straight through."""

	modulator = _modulator()

	modulator.handle_midi(blockbeat.events.NoteOff(60), 1.0, recorder)
	modulator.handle_midi(blockbeat.events.ControlChange(64, 127), 1.0, recorder)

	assert [e.event for e in recorder.events] == [blockbeat.events.ControlChange(64, 127)]


def test_adsr_stop_clears_envelopes (recorder: blockbeat.events.EventRecorder) -> None:

	"""A stop drops every sounding envelope."""

	modulator = _modulator()

	modulator.handle_midi(blockbeat.events.NoteOn(60), 1.0, recorder)
	modulator.process_block(blockbeat.transport.WindowInfo(1.0, 1.1), recorder)

	assert len(modulator.bank) == 1

	modulator.process_block(blockbeat.transport.WindowInfo.stopped(1.1), recorder)

	assert len(modulator.bank) == 0
	assert modulator.active_notes == []


def test_adsr_rejects_inverted_ranges () -> None:

	"""Minimums above maximums are configuration errors."""

	with pytest.raises(blockbeat.exceptions.InvalidConfiguration):
		blockbeat.devices.adsr_modulator.AdsrSettings(velocity_min=100, velocity_max=10)

	with pytest.raises(blockbeat.exceptions.InvalidConfiguration):
		_modulator(length_min="1/4", length_max="1/16")


# ---------------------------------------------------------------------------
# ProbabilityGate
# ---------------------------------------------------------------------------

def _gate (**kwargs: typing.Any) -> blockbeat.devices.probability_gate.ProbabilityGate:

	return blockbeat.devices.probability_gate.ProbabilityGate(
		blockbeat.devices.probability_gate.GateSettings(**kwargs),
		rng=random.Random(11)
	)


def test_gate_probability_follows_the_beat () -> None:

	"""The current probability is the pattern value for the division step being played."""

	gate = _gate(preset="Straight")
	sink = blockbeat.events.EventRecorder()

	gate.process_block(blockbeat.transport.WindowInfo(1.25, 1.3), sink)
	assert gate.current_probability == 48

	gate.process_block(blockbeat.transport.WindowInfo(1.5, 1.55), sink)
	assert gate.current_probability == 72


def test_gate_start_and_length_select_part_of_pattern () -> None:

	"""Start offsets into the pattern and length sets how soon it repeats."""

	gate = _gate(pattern=list(range(0, 96, 6)), start=2, length=4)

	assert gate.probability_at(1.0) == 12
	assert gate.probability_at(1.75) == 30
	assert gate.probability_at(2.0) == 12


def test_gate_full_and_empty_patterns (recorder: blockbeat.events.EventRecorder) -> None:

	"""100% lets every note through and 0% none."""

	open_gate = _gate(pattern=[100] * 16)
	closed_gate = _gate(pattern=[0] * 16)
	window = blockbeat.transport.WindowInfo(1.0, 1.1)

	for gate in (open_gate, closed_gate):
		gate.process_block(window, recorder)
		for _ in range(50):
			gate.handle_midi(blockbeat.events.NoteOn(60), 1.0, recorder)

	assert len(recorder.note_ons()) == 50
	assert open_gate.passed == 50
	assert closed_gate.blocked == 50


def test_gate_skew_raises_probability (recorder: blockbeat.events.EventRecorder) -> None:

	"""Skew is added to every step's probability."""

	gate = _gate(pattern=[0] * 16, skew=100)
	gate.process_block(blockbeat.transport.WindowInfo(1.0, 1.1), recorder)

	for _ in range(20):
		gate.handle_midi(blockbeat.events.NoteOn(60), 1.0, recorder)

	assert len(recorder.note_ons()) == 20


def test_gate_passes_note_offs_and_controls (recorder: blockbeat.events.EventRecorder) -> None:

	"""Only NoteOns are gated."""

	gate = _gate(pattern=[0] * 16)
	gate.process_block(blockbeat.transport.WindowInfo(1.0, 1.1), recorder)

	gate.handle_midi(blockbeat.events.NoteOff(60), 1.0, recorder)
	gate.handle_midi(blockbeat.events.ControlChange(1, 2), 1.0, recorder)

	assert len(recorder.events) == 2


def test_gate_length_zero_is_bypass (recorder: blockbeat.events.EventRecorder) -> None:

	"""A zero-length pattern turns the gate off."""

	gate = _gate(pattern=[0] * 16)
	gate.configure(length=0)
	gate.process_block(blockbeat.transport.WindowInfo(1.0, 1.1), recorder)

	gate.handle_midi(blockbeat.events.NoteOn(60), 1.0, recorder)

	assert len(recorder.note_ons()) == 1


def test_gate_presets_and_step_edits () -> None:

	"""Presets replace the pattern; step edits change one value without touching the presets."""

	gate = _gate()

	gate.apply_preset("Reverse")
	assert gate.settings.pattern == blockbeat.devices.probability_gate.PRESETS["Reverse"]

	gate.set_step(0, 99)
	assert gate.settings.pattern[0] == 99
	assert blockbeat.devices.probability_gate.PRESETS["Reverse"][0] == 6

	with pytest.raises(blockbeat.exceptions.InvalidConfiguration):
		gate.apply_preset("Nope")

	with pytest.raises(blockbeat.exceptions.InvalidConfiguration):
		gate.set_step(3, 101)

	assert gate.settings.pattern[3] == 24


# ---------------------------------------------------------------------------
# WeightedMelody
# ---------------------------------------------------------------------------

def test_melody_without_rests_plays_on_every_length (recorder: blockbeat.events.EventRecorder) -> None:

	"""With one note length and no rests the melody is a steady pulse."""

	melody = blockbeat.devices.melody.WeightedMelody(
		blockbeat.devices.melody.MelodySettings(rest_weight=0, note_lengths=[(1, "1/4")]),
		rng=random.Random(3)
	)

	_play(melody, blockbeat.transport.ScriptedTransport.contiguous(1.0, 0.125, 32), recorder)

	assert [e.beat for e in recorder.note_ons()] == pytest.approx([1.0, 2.0, 3.0, 4.0])


def test_melody_pitches_stay_in_scale (recorder: blockbeat.events.EventRecorder) -> None:

	"""Every pitch comes from the weighted scale pool."""

	settings = blockbeat.devices.melody.MelodySettings(root=2, mode="dorian", octave=2)
	melody = blockbeat.devices.melody.WeightedMelody(settings, rng=random.Random(8))
	allowed = {pitch for _, pitch in blockbeat.scales.pitch_weight_pool(2, "dorian", 2).weights()}

	_play(melody, blockbeat.transport.ScriptedTransport.contiguous(1.0, 0.125, 256), recorder)

	assert recorder.note_ons()
	assert {e.event.pitch for e in recorder.note_ons()} <= allowed


def test_melody_note_lengths_come_from_pool (recorder: blockbeat.events.EventRecorder) -> None:

	"""Each note lasts one of the configured lengths."""

	melody = blockbeat.devices.melody.WeightedMelody(rng=random.Random(21))

	_play(melody, blockbeat.transport.ScriptedTransport.contiguous(1.0, 0.125, 256), recorder)

	durations = {
		round(off.beat - on.beat, 6)
		for on, off in zip(recorder.note_ons(), recorder.note_offs())
	}

	assert durations <= {0.5, 1.0, 0.25}


def test_melody_rests_leave_gaps (recorder: blockbeat.events.EventRecorder) -> None:

	"""With rests, some notes start later than the previous note ended."""

	melody = blockbeat.devices.melody.WeightedMelody(
		blockbeat.devices.melody.MelodySettings(note_weight=1, rest_weight=1, note_lengths=[(1, "1/4")], rest_lengths=[(1, "1/2")]),
		rng=random.Random(4)
	)

	_play(melody, blockbeat.transport.ScriptedTransport.contiguous(1.0, 0.25, 256), recorder)

	beats = [e.beat for e in recorder.note_ons()]
	gaps = {round(later - earlier, 6) for earlier, later in zip(beats, beats[1:])}

	assert 1.0 in gaps
	assert 3.0 in gaps


# ---------------------------------------------------------------------------
# ChordProgression
# ---------------------------------------------------------------------------

def test_progression_starts_on_start_chord (recorder: blockbeat.events.EventRecorder) -> None:

	"""The first chord is the map's START chord, played as a triad."""

	progression = blockbeat.devices.progression.ChordProgression(rng=random.Random(2))

	_play(progression, blockbeat.transport.ScriptedTransport.contiguous(1.0, 0.25, 32), recorder)

	first = [e.event.pitch for e in recorder.note_ons() if e.beat == 1.0]
	second = [e for e in recorder.note_ons() if e.beat == 5.0]

	assert first == [60, 64, 67]
	assert len(second) == 3
	assert progression.history[0] == "I"
	assert progression.history[1] in {"ii", "iii", "IV", "V", "vi"}


def test_progression_chords_last_chord_length (recorder: blockbeat.events.EventRecorder) -> None:

	"""Chord notes end when the next chord begins."""

	progression = blockbeat.devices.progression.ChordProgression(
		blockbeat.devices.progression.ProgressionSettings(chord_length=0.5),
		rng=random.Random(2)
	)

	_play(progression, blockbeat.transport.ScriptedTransport.contiguous(1.0, 0.25, 8), recorder)

	assert [e.beat for e in recorder.note_offs()][:3] == pytest.approx([1.5, 1.5, 1.5])
	assert len(recorder.note_ons()) == 12


def test_progression_restarts_after_stop (recorder: blockbeat.events.EventRecorder) -> None:

	"""Stopping sends the chain back to its START chord."""

	progression = blockbeat.devices.progression.ChordProgression(
		blockbeat.devices.progression.ProgressionSettings(progression={"START": "I", "I": [(1, "V")], "V": [(1, "I")]}, chord_length=1.0),
		rng=random.Random(2)
	)

	_play(progression, blockbeat.transport.ScriptedTransport.contiguous(1.0, 0.5, 4), recorder)
	progression.process_block(blockbeat.transport.WindowInfo.stopped(3.0), recorder)
	_play(progression, blockbeat.transport.ScriptedTransport.contiguous(3.0, 0.5, 2), recorder)

	assert progression.history == ["I", "V", "I"]


def test_progression_rejects_unplayable_chords () -> None:

	"""Chords outside I-VII are caught when the device is configured."""

	with pytest.raises(blockbeat.exceptions.InvalidConfiguration):
		blockbeat.devices.progression.ChordProgression(
			blockbeat.devices.progression.ProgressionSettings(progression={"START": "I", "I": [(1, "bVII")], "bVII": [(1, "I")]})
		)


# ---------------------------------------------------------------------------
# create_device
# ---------------------------------------------------------------------------

@pytest.mark.parametrize("kind, device_class", [
	("euclid", blockbeat.devices.euclid.EuclidGroove),
	("adsr", blockbeat.devices.adsr_modulator.AdsrModulator),
	("gate", blockbeat.devices.probability_gate.ProbabilityGate),
	("melody", blockbeat.devices.melody.WeightedMelody),
	("progression", blockbeat.devices.progression.ChordProgression),
])
def test_create_device_builds_each_kind (kind: str, device_class: type) -> None:

	"""Every registered kind builds with its default settings."""

	device = blockbeat.device_registry.create_device(kind, rng=random.Random(1))

	assert isinstance(device, device_class)
	assert isinstance(device, blockbeat.devices.Device)


def test_create_device_from_plain_mapping () -> None:

	"""Nested voice settings may be plain dictionaries."""

	device = blockbeat.device_registry.create_device("euclid", {"rate": "1/8", "voices": [{"pitch": 36}, {"pitch": 38, "direction": "backward"}]})

	assert [voice.settings.pitch for voice in device.voices] == [36, 38]


def test_create_device_rejects_unknown_kind_and_settings () -> None:

	"""Typos in device names or settings are reported."""

	with pytest.raises(blockbeat.exceptions.InvalidConfiguration):
		blockbeat.device_registry.create_device("arp")

	with pytest.raises(blockbeat.exceptions.InvalidConfiguration):
		blockbeat.device_registry.create_device("gate", {"skw": 10})
