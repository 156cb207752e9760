"""MIDI velocity constants.

Velocity is the MIDI attack strength (0-127).
"""

DEFAULT_VELOCITY = 100          # Most notes and drum hits
DEFAULT_CHORD_VELOCITY = 90     # Chords (softer)

# MIDI standard range
MIN_VELOCITY = 0
MAX_VELOCITY = 127

# Detune range in cents, as exposed by the host's NoteOn objects
MIN_DETUNE = -127
MAX_DETUNE = 127
