"""Beat-based note lengths and scan timing.

All values are in **beats**, where 1.0 = one quarter note and the first beat
of a composition is ``FIRST_BEAT`` (1.0, not 0.0).

Look up a length by its menu name::

    import blockbeat.constants.durations as dur

    dur.NOTE_LENGTHS["1/16"]      # 0.25
    dur.NOTE_LENGTHS["1/8d"]      # 0.75

Triplet values are exact fractions rather than the rounded menu values some
hosts display, so a scheduler stepping by ``1/16t`` does not drift.
"""

import typing


FIRST_BEAT = 1.0
BEATS_PER_BAR = 4

# The scheduler walks each window in steps of this size. It must be finer than
# the shortest schedulable length so every trigger lands on a scan position.
SCAN_INCREMENT = 0.001

THIRTYSECOND = 0.125
SIXTEENTH = 0.25
DOTTED_SIXTEENTH = 0.375
TRIPLET_EIGHTH = 1 / 3
EIGHTH = 0.5
DOTTED_EIGHTH = 0.75
TRIPLET_QUARTER = 2 / 3
QUARTER = 1.0
DOTTED_QUARTER = 1.5
HALF = 2.0
DOTTED_HALF = 3.0
WHOLE = 4.0

NOTE_LENGTHS: typing.Dict[str, float] = {
	"1/64":     0.0625,
	"1/64d":    0.09375,
	"1/64t":    1 / 48,
	"1/32":     THIRTYSECOND,
	"1/32d":    0.1875,
	"1/32t":    1 / 24,
	"1/16":     SIXTEENTH,
	"1/16d":    DOTTED_SIXTEENTH,
	"1/16t":    1 / 6,
	"1/8":      EIGHTH,
	"1/8d":     DOTTED_EIGHTH,
	"1/8t":     TRIPLET_EIGHTH,
	"1/4":      QUARTER,
	"1/4d":     DOTTED_QUARTER,
	"1/4t":     TRIPLET_QUARTER,
	"1/2":      HALF,
	"1/2d":     DOTTED_HALF,
	"1/2t":     4 / 3,
	"1 bar":    WHOLE,
	"1.5 bars": 6.0,
	"2 bars":   8.0,
	"4 bars":   16.0,
	"8 bars":   32.0,
}


def note_length (name: typing.Union[str, float]) -> float:

	"""Resolve a note length given either as a menu name or a number of beats.

	Raises ``KeyError`` for unknown names so callers can wrap it in a
	configuration error with context.
	"""

	if isinstance(name, str):
		return NOTE_LENGTHS[name]

	return float(name)
