import enum
import logging
import random
import typing

import blockbeat.exceptions


logger = logging.getLogger(__name__)


def generate_euclidean_pattern (steps: int, density: float, offset: int = 0) -> typing.List[int]:

	"""Generate an evenly distributed onset pattern.

	The number of onsets is ``round(steps * density / 100)``. Step ``i``
	(0-based) is an onset when ``floor(i * onsets / steps)`` differs from the
	previous step's value, which spreads the onsets as evenly as the step
	count allows and starts the unrotated pattern on an onset. The result is
	then rotated left by ``offset`` steps.

	A density outside 0-100 is clamped (and logged) rather than rejected, so a
	bad setting degrades to an empty or full pattern.

	Parameters:
		steps: Pattern length, at least 1.
		density: Percentage of steps carrying an onset.
		offset: Left rotation in steps; taken modulo ``steps``.

	Example:
		```python
		generate_euclidean_pattern(8, 50)       # [1, 0, 1, 0, 1, 0, 1, 0]
		generate_euclidean_pattern(8, 37.5, 1)  # [0, 0, 1, 0, 0, 1, 0, 1]
		```
	"""

	if isinstance(steps, bool) or not isinstance(steps, int) or steps < 1:
		raise blockbeat.exceptions.InvalidConfiguration(f"Steps must be an integer of at least 1, got {steps!r}")

	if not 0 <= density <= 100:
		logger.warning(f"Density {density} is outside 0-100 - clamped")
		density = max(0, min(100, density))

	# round() on .5 would go to even; the pattern wants half-up.
	onsets = int(steps * density / 100 + 0.5)

	if onsets == 0:
		return [0] * steps

	pattern: typing.List[int] = []
	previous = -1

	for step in range(steps):
		current = (step * onsets) // steps
		pattern.append(1 if current != previous else 0)
		previous = current

	shift = offset % steps

	return pattern[shift:] + pattern[:shift]


class Direction (enum.Enum):

	"""
	How a step cursor moves through its pattern.
	"""

	FORWARD = "forward"
	BACKWARD = "backward"
	PING_PONG = "ping_pong"
	RANDOM = "random"

	@classmethod
	def parse (cls, value: typing.Union[str, "Direction"]) -> "Direction":

		"""Accept an enum member or a name such as ``"ping-pong"`` or ``"Backward"``."""

		if isinstance(value, cls):
			return value

		key = str(value).strip().lower().replace("-", "_").replace(" ", "_")

		for member in cls:
			if member.value == key:
				return member

		raise blockbeat.exceptions.InvalidConfiguration(f"Unknown direction {value!r}. Available: {[m.value for m in cls]}")


class StepCursor:

	"""
	A position in a fixed-length pattern, advanced once each time its voice fires.
	"""

	def __init__ (self, length: int, direction: typing.Union[str, Direction] = Direction.FORWARD, rng: typing.Optional[random.Random] = None) -> None:

		if length < 1:
			raise blockbeat.exceptions.InvalidConfiguration("Pattern length must be at least 1")

		self.length = length
		self.direction = Direction.parse(direction)
		self.rng = rng or random.Random()
		self.position = 0
		self._moving_forward = True

	def reset (self) -> None:

		"""Return to the first step, heading forward."""

		self.position = 0
		self._moving_forward = True

	def resize (self, length: int) -> None:

		"""Change the pattern length, keeping the position inside it."""

		if length < 1:
			raise blockbeat.exceptions.InvalidConfiguration("Pattern length must be at least 1")

		self.length = length
		self.position = min(self.position, length - 1)

	def advance (self) -> int:

		"""Move to the next step according to the direction and return the new position."""

		if self.direction is Direction.FORWARD:
			self.position = (self.position + 1) % self.length

		elif self.direction is Direction.BACKWARD:
			self.position = (self.position - 1) % self.length

		elif self.direction is Direction.PING_PONG:

			if self._moving_forward:
				self.position += 1
				if self.position == self.length:
					# The end step repeats once on the turn.
					self.position = self.length - 1
					self._moving_forward = False

			else:
				self.position -= 1
				if self.position < 0:
					self.position = 0
					self._moving_forward = True

		else:
			self.position = self.rng.randint(0, self.length - 1)

		return self.position
