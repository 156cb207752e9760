import re
import typing

import blockbeat.exceptions
import blockbeat.weighted_pool


SCALE_DEFINITIONS: typing.Dict[str, typing.List[int]] = {
	"chromatic": [0, 1, 2, 3, 4, 5, 6, 7, 8, 9, 10, 11],
	"ionian": [0, 2, 4, 5, 7, 9, 11],
	"dorian": [0, 2, 3, 5, 7, 9, 10],
	"phrygian": [0, 1, 3, 5, 7, 8, 10],
	"lydian": [0, 2, 4, 6, 7, 9, 11],
	"mixolydian": [0, 2, 4, 5, 7, 9, 10],
	"aeolian": [0, 2, 3, 5, 7, 8, 10],
	"locrian": [0, 1, 3, 5, 6, 8, 10],
	"harmonic_minor": [0, 2, 3, 5, 7, 8, 11],
	"melodic_minor": [0, 2, 3, 5, 7, 9, 11],
}

SCALE_ALIASES: typing.Dict[str, str] = {
	"major": "ionian",
	"minor": "aeolian",
}

PITCH_CLASS_NAMES = ["C", "C♯/D♭", "D", "D♯/E♭", "E", "F", "F♯/G♭", "G", "G♯/A♭", "A", "A♯/B♭", "B"]

# Weights used by the weighted melody script's scale picker.
ROOT_WEIGHT = 75
DIATONIC_WEIGHT = 25
NONDIATONIC_WEIGHT = 0

ROMAN_DEGREES: typing.Dict[str, int] = {
	"i": 1,
	"ii": 2,
	"iii": 3,
	"iv": 4,
	"v": 5,
	"vi": 6,
	"vii": 7,
}

_ROMAN_PATTERN = re.compile(r"^([ivIV]+)[°˚o]?$")


def get_scale (mode: str) -> typing.List[int]:

	"""
	Return the interval list for a mode name (case-insensitive, ``major``/``minor`` accepted).
	"""

	key = mode.strip().lower().replace(" ", "_")
	key = SCALE_ALIASES.get(key, key)

	if key not in SCALE_DEFINITIONS:
		raise blockbeat.exceptions.InvalidConfiguration(f"Unknown mode '{mode}'. Available: {sorted(SCALE_DEFINITIONS)}")

	return list(SCALE_DEFINITIONS[key])


def scale_pitch_classes (root: int, mode: str = "ionian") -> typing.List[int]:

	"""
	Return the pitch classes (0–11) that belong to a root and mode.

	Parameters:
		root: Root pitch class (0 = C, 1 = C#/Db, …, 11 = B).
		mode: Mode name, see ``SCALE_DEFINITIONS``.

	Example:
		```python
		scale_pitch_classes(0, "ionian")   # → [0, 2, 4, 5, 7, 9, 11]
		scale_pitch_classes(9, "aeolian")  # → [9, 11, 0, 2, 4, 5, 7]
		```
	"""

	return [(root + interval) % 12 for interval in get_scale(mode)]


def octave_base (octave: int) -> int:

	"""Return the MIDI note of C in an octave, where octave 3 holds middle C (60)."""

	base = (octave + 2) * 12

	if not 0 <= base <= 120:
		raise blockbeat.exceptions.InvalidConfiguration(f"Octave {octave} is outside the MIDI range")

	return base


def pitch_weight_pool (
	root: int,
	mode: str = "ionian",
	octave: int = 3,
	root_weight: int = ROOT_WEIGHT,
	diatonic_weight: int = DIATONIC_WEIGHT,
	nondiatonic_weight: int = NONDIATONIC_WEIGHT
) -> blockbeat.weighted_pool.WeightedPool[int]:

	"""Build a pool of MIDI pitches for one octave, weighted by their role in the scale.

	The root gets ``root_weight``, other scale tones ``diatonic_weight`` and
	the remaining chromatic pitches ``nondiatonic_weight``. Pitches whose weight
	is zero are left out.

	Example:
		```python
		# C ionian, middle-C octave: 60 is drawn three times as often as 62
		pool = pitch_weight_pool(0, "ionian", octave=3)
		pool.weights()[:2]  # [(75, 60), (25, 62)]
		```
	"""

	base = octave_base(octave)
	pitch_classes = scale_pitch_classes(root, mode)
	items: typing.List[typing.Tuple[int, int]] = []

	for offset in range(12):
		pitch_class = (root + offset) % 12

		if pitch_class == root % 12:
			weight = root_weight
		elif pitch_class in pitch_classes:
			weight = diatonic_weight
		else:
			weight = nondiatonic_weight

		pitch = base + root % 12 + offset

		if weight > 0 and pitch <= 127:
			items.append((weight, pitch))

	return blockbeat.weighted_pool.WeightedPool.build(items)


def roman_degree (numeral: str) -> int:

	"""Return the scale degree (1-7) of a plain roman numeral such as ``"IV"`` or ``"vii°"``."""

	match = _ROMAN_PATTERN.match(numeral.strip())

	if match is None or match.group(1).lower() not in ROMAN_DEGREES:
		raise blockbeat.exceptions.InvalidConfiguration(f"Unsupported chord numeral {numeral!r}")

	return ROMAN_DEGREES[match.group(1).lower()]


def roman_triad (numeral: str, root: int = 0, mode: str = "ionian", octave: int = 3) -> typing.List[int]:

	"""Return the MIDI pitches of the diatonic triad on a numeral's degree.

	Chord quality comes from the mode, not from the numeral's case, so ``"ii"``
	and ``"II"`` give the same chord.

	Example:
		```python
		roman_triad("V", root=0)   # → [67, 71, 74]  (G B D)
		```
	"""

	intervals = get_scale(mode)

	if len(intervals) != 7:
		raise blockbeat.exceptions.InvalidConfiguration(f"Mode '{mode}' is not heptatonic - cannot build triads")

	degree = roman_degree(numeral) - 1
	base = octave_base(octave) + root % 12
	pitches: typing.List[int] = []

	for third in range(3):
		index = degree + third * 2
		pitches.append(base + intervals[index % 7] + 12 * (index // 7))

	return pitches
