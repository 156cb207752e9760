import logging
import random

import blockbeat
import blockbeat.devices.adsr_modulator
import blockbeat.devices.progression

logging.basicConfig(level=logging.INFO)

BPM = 90

progression = blockbeat.devices.progression.ChordProgression(
	blockbeat.devices.progression.ProgressionSettings(root=9, mode="aeolian", octave=3, chord_length="2 bars"),
	rng=random.Random(7)
)

# Each chord tone stutters, swelling in and fading over a bar and a half.
swell = blockbeat.devices.adsr_modulator.AdsrModulator(
	blockbeat.devices.adsr_modulator.AdsrSettings(
		attack="1/2",
		decay="1/4",
		sustain="1/2",
		sustain_level=0.6,
		release="1/2d",
		velocity_min=20,
		velocity_max=100,
		length_enabled=True,
		length_min="1/32",
		length_max="1/8",
		detune_min=-10,
		detune_max=10,
	)
)

transport = blockbeat.transport.SimulatedTransport.from_audio(bpm=BPM)
host = blockbeat.Host([progression, swell], record=True)

host.run(transport, count=int(32 / transport.block_beats))
transport.stop()
host.process(transport.poll())

logging.info(f"Chords played: {' '.join(progression.history)}")

blockbeat.midi_file.save_recording(host.recorded_events, "pad_swells.mid", bpm=BPM)
