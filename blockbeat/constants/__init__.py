"""Constants for blockbeat.

- ``blockbeat.constants.durations`` - Beat-based note lengths and scan timing
- ``blockbeat.constants.velocity`` - MIDI velocity constants
"""
