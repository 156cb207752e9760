class InvalidConfiguration (ValueError):

	"""
	Raised when a component is set up with values it cannot work with.

	Covers empty or non-positive weight pools, loop regions whose right edge is
	not after the left, Euclidean patterns with fewer than one step, and
	scheduler steps that would never advance. These surface at setup time so
	the per-window callbacks can assume valid state.
	"""
