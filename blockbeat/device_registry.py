"""
Build the ready-made devices by short name from configuration mappings.
"""

import dataclasses
import random
import typing

import blockbeat.devices
import blockbeat.devices.adsr_modulator
import blockbeat.devices.euclid
import blockbeat.devices.melody
import blockbeat.devices.probability_gate
import blockbeat.devices.progression
import blockbeat.exceptions


DEVICE_TYPES: typing.Dict[str, typing.Type[typing.Any]] = {
	"euclid": blockbeat.devices.euclid.EuclidGroove,
	"adsr": blockbeat.devices.adsr_modulator.AdsrModulator,
	"gate": blockbeat.devices.probability_gate.ProbabilityGate,
	"melody": blockbeat.devices.melody.WeightedMelody,
	"progression": blockbeat.devices.progression.ChordProgression,
}


def create_device (kind: str, settings: typing.Optional[typing.Mapping[str, typing.Any]] = None, rng: typing.Optional[random.Random] = None) -> blockbeat.devices.Device:

	"""Build a device by its short name from a plain settings mapping.

	Unknown names and unknown settings raise ``InvalidConfiguration`` so a typo
	in a config file is reported instead of silently ignored.

	Example:
		```python
		device = create_device("euclid", {"rate": "1/8", "voices": [{"pitch": 36, "density": 25}]}, rng=random.Random(7))
		```
	"""

	if kind not in DEVICE_TYPES:
		raise blockbeat.exceptions.InvalidConfiguration(f"Unknown device type {kind!r}. Available: {sorted(DEVICE_TYPES)}")

	device_class = DEVICE_TYPES[kind]
	settings_class = device_class.settings_class
	values = dict(settings or {})

	known = {field.name for field in dataclasses.fields(settings_class)}
	unknown = sorted(set(values) - known)

	if unknown:
		raise blockbeat.exceptions.InvalidConfiguration(f"Unknown settings for {kind!r}: {unknown}")

	device_settings = settings_class(**values)

	if kind == "adsr":
		return device_class(device_settings)

	return device_class(device_settings, rng=rng)
