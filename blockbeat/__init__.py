"""
blockbeat - beat-synchronized MIDI generation for block-based hosts.

Audio hosts hand plugins time one process block at a time, and a block rarely
starts or ends on a musical beat. blockbeat keeps a trigger beat alive across
blocks and finds every scheduled beat that falls inside each one, including
beats that wrap around when the transport cycles a loop.

On top of the scheduler it provides:

- **Weighted random pools** with exact cumulative-weight lookup.
- **Euclidean patterns** with step cursors that run forward, backward,
  ping-pong or at random.
- **ADSR envelopes** that advance in lockstep with the scheduler's scan.
- **Markov chord progressions** over roman numerals, with scale helpers.
- **Devices** built from these pieces: a multi-voice Euclidean groove, an
  ADSR note modulator, a beat-based probability gate, a weighted melody
  generator and a chord progression generator.
- **A host** that chains devices, simulates a transport and records the
  result to a standard MIDI file.

Quick start:

	```python
	import random
	import blockbeat

	transport = blockbeat.SimulatedTransport.from_audio(bpm=120, sample_rate=44100, block_size=512)
	groove = blockbeat.create_device("euclid", {"voices": [{"pitch": 36, "density": 25}]}, rng=random.Random(1))

	host = blockbeat.Host([groove], record=True)
	host.run(transport, count=1000)
	blockbeat.save_recording(host.recorded_events, "groove.mid", bpm=120)
	```

Or render a YAML file from the command line with ``python -m blockbeat config.yaml``.
"""

import blockbeat.device_registry
import blockbeat.devices
import blockbeat.envelope
import blockbeat.euclidean
import blockbeat.events
import blockbeat.exceptions
import blockbeat.host
import blockbeat.markov_chain
import blockbeat.midi_file
import blockbeat.scheduler
import blockbeat.transport
import blockbeat.weighted_pool

from blockbeat.device_registry import create_device
from blockbeat.envelope import Envelope, EnvelopeBank
from blockbeat.euclidean import Direction, StepCursor, generate_euclidean_pattern
from blockbeat.events import ControlChange, EventRecorder, NoteOff, NoteOn
from blockbeat.exceptions import InvalidConfiguration
from blockbeat.host import Host
from blockbeat.markov_chain import MarkovChain
from blockbeat.midi_file import save_recording
from blockbeat.scheduler import BeatScheduler
from blockbeat.transport import LoopRegion, ScriptedTransport, SimulatedTransport, WindowInfo
from blockbeat.weighted_pool import WeightedPool
