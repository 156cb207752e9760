import logging
import math
import os
import random
import sys
import typing

import yaml

import blockbeat.device_registry
import blockbeat.devices
import blockbeat.exceptions
import blockbeat.host
import blockbeat.midi_file
import blockbeat.transport


# Configure logging
logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)

DEFAULT_DEVICE = {"type": "euclid"}


def load_config (config_path: str = 'config.yaml') -> dict:

	"""
	Load configuration from a YAML file.
	"""

	if not os.path.exists(config_path):
		logger.warning(f"Config file {config_path} not found. Using defaults.")
		return {}

	with open(config_path, 'r') as f:
		return yaml.safe_load(f) or {}


def build_transport (config: typing.Mapping[str, typing.Any]) -> typing.Tuple[blockbeat.transport.SimulatedTransport, int]:

	"""Create the simulated transport and the number of windows needed to cover the render length."""

	settings = config.get('transport', {}) or {}

	transport = blockbeat.transport.SimulatedTransport.from_audio(
		bpm=settings.get('bpm', 120),
		sample_rate=settings.get('sample_rate', 44100),
		block_size=settings.get('block_size', 512),
		start_beat=settings.get('start_beat', 1.0)
	)

	loop = settings.get('loop')

	if loop:
		missing = [edge for edge in ('left', 'right') if edge not in loop]

		if missing:
			raise blockbeat.exceptions.InvalidConfiguration(f"Loop is missing {missing}")

		transport.set_loop(loop['left'], loop['right'])

	beats = settings.get('beats', 16)

	if not beats > 0:
		raise blockbeat.exceptions.InvalidConfiguration(f"Render length must be positive, got {beats}")

	return transport, math.ceil(beats / transport.block_beats)


def build_devices (config: typing.Mapping[str, typing.Any], rng: random.Random) -> typing.List[blockbeat.devices.Device]:

	"""Create the device chain from either a single ``device`` entry or a ``devices`` list."""

	entries = config.get('devices') or [config.get('device') or DEFAULT_DEVICE]
	devices = []

	for entry in entries:
		entry = dict(entry)
		kind = entry.pop('type', None)

		if kind is None:
			raise blockbeat.exceptions.InvalidConfiguration("Every device entry needs a 'type'")

		devices.append(blockbeat.device_registry.create_device(kind, entry, rng=rng))

	return devices


def render (config: typing.Mapping[str, typing.Any]) -> blockbeat.host.Host:

	"""
	Play the configured devices over a simulated transport and return the host with its recording.
	"""

	seed = config.get('seed')
	rng = random.Random(seed)

	transport, count = build_transport(config)
	host = blockbeat.host.Host(build_devices(config, rng), record=True)

	logger.info(f"Rendering {count} blocks of {transport.block_beats:.4f} beats")

	host.run(transport, count)

	# One stopped block lets every device reset and ends any hanging notes.
	transport.stop()
	host.process(transport.poll())

	return host


def main (argv: typing.Optional[typing.List[str]] = None) -> int:

	"""
	Main entry point: render a config file to a MIDI file.
	"""

	args = sys.argv[1:] if argv is None else argv
	config_path = args[0] if args else 'config.yaml'

	logger.info("blockbeat starting...")

	try:
		config = load_config(config_path)
		host = render(config)
	except blockbeat.exceptions.InvalidConfiguration as e:
		logger.error(f"Invalid configuration: {e}")
		return 1

	output = config.get('output', {}) or {}
	filename = output.get('filename', 'blockbeat.mid')
	bpm = (config.get('transport', {}) or {}).get('bpm', 120)

	if not blockbeat.midi_file.save_recording(host.recorded_events, filename, bpm=bpm):
		return 1

	return 0


if __name__ == "__main__":
	sys.exit(main())
