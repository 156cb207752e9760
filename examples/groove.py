import logging
import random

import blockbeat
import blockbeat.constants.durations as dur
import blockbeat.device_registry

logging.basicConfig(level=logging.INFO)

DRUM_CHANNEL = 10
BPM = 124

rng = random.Random(42)

# Kick on the quarters, a sparse snare offset onto the backbeat, busy hats.
groove = blockbeat.device_registry.create_device("euclid", {
	"rate": "1/16",
	"resync": "bar",
	"voices": [
		{"pitch": 36, "density": 25, "velocity": 110, "channel": DRUM_CHANNEL},
		{"pitch": 38, "density": 13, "offset": 4, "velocity": 100, "channel": DRUM_CHANNEL},
		{"pitch": 42, "density": 70, "velocity": 70, "probability": 85, "channel": DRUM_CHANNEL},
	],
}, rng=rng)

# Thin the hats on the weak sixteenths.
gate = blockbeat.device_registry.create_device("gate", {"preset": "Lead In on 4", "skew": 20}, rng=rng)

transport = blockbeat.transport.SimulatedTransport.from_audio(bpm=BPM, sample_rate=48000, block_size=256)
transport.set_loop(dur.FIRST_BEAT, dur.FIRST_BEAT + 4 * dur.WHOLE)

host = blockbeat.Host([groove, gate], record=True)

# Three passes of the four-bar loop.
host.run(transport, count=int(3 * 16 / transport.block_beats))
transport.stop()
host.process(transport.poll())

blockbeat.midi_file.save_recording(host.recorded_events, "groove.mid", bpm=BPM)
