import bisect
import random
import typing

import blockbeat.exceptions


ValueType = typing.TypeVar("ValueType")


class WeightedPool (typing.Generic[ValueType]):

	"""
	A discrete distribution stored as ascending cumulative integer weights.

	Each value owns the range of rolls between the previous cumulative key
	(exclusive) and its own key (inclusive). A roll is drawn uniformly from
	``[1, total]`` and the first key at or above it wins.

	Example:
		```python
		pool = blockbeat.weighted_pool.WeightedPool.build([(75, 60), (25, 62)])

		pool.lookup(1)      # 60
		pool.lookup(76)     # 62
		pool.draw(rng)      # 60 three times out of four
		```
	"""

	def __init__ (self, keys: typing.Sequence[int], values: typing.Sequence[ValueType]) -> None:

		"""
		Initialize from parallel sequences of cumulative keys and values. Use ``build()`` instead.
		"""

		if not keys or len(keys) != len(values):
			raise blockbeat.exceptions.InvalidConfiguration("A weighted pool needs one cumulative key per value")

		if any(later <= earlier for earlier, later in zip(keys, keys[1:])) or keys[0] <= 0:
			raise blockbeat.exceptions.InvalidConfiguration("Cumulative keys must be positive and strictly ascending")

		self._keys: typing.List[int] = list(keys)
		self._values: typing.List[ValueType] = list(values)

	@classmethod
	def build (cls, items: typing.Iterable[typing.Tuple[int, ValueType]]) -> "WeightedPool[ValueType]":

		"""Build a pool from ``(weight, value)`` pairs.

		Weights must be positive integers. Order is preserved: the first item
		owns the lowest rolls.
		"""

		keys: typing.List[int] = []
		values: typing.List[ValueType] = []
		total = 0

		for weight, value in items:

			if isinstance(weight, bool) or not isinstance(weight, int):
				raise blockbeat.exceptions.InvalidConfiguration(f"Weight for {value!r} must be an integer, got {weight!r}")

			if weight <= 0:
				raise blockbeat.exceptions.InvalidConfiguration(f"Weight for {value!r} must be positive, got {weight}")

			total += weight
			keys.append(total)
			values.append(value)

		if not values:
			raise blockbeat.exceptions.InvalidConfiguration("A weighted pool cannot be empty")

		return cls(keys, values)

	@property
	def total (self) -> int:

		return self._keys[-1]

	def __len__ (self) -> int:

		return len(self._values)

	def items (self) -> typing.List[typing.Tuple[int, ValueType]]:

		"""Return the ``(cumulative_key, value)`` pairs in ascending order."""

		return list(zip(self._keys, self._values))

	def weights (self) -> typing.List[typing.Tuple[int, ValueType]]:

		"""Return the original ``(weight, value)`` pairs."""

		previous = 0
		result: typing.List[typing.Tuple[int, ValueType]] = []

		for key, value in zip(self._keys, self._values):
			result.append((key - previous, value))
			previous = key

		return result

	def probability (self, value: ValueType) -> float:

		"""Return the chance of drawing ``value``, summed over every entry holding it."""

		return sum(weight for weight, v in self.weights() if v == value) / self.total

	def lookup (self, roll: int) -> ValueType:

		"""Return the value owning ``roll`` (1-based, at most ``total``)."""

		if len(self._values) == 1:
			return self._values[0]

		if not 1 <= roll <= self.total:
			raise ValueError(f"Roll {roll} is outside [1, {self.total}]")

		return self._values[bisect.bisect_left(self._keys, roll)]

	def draw (self, rng: typing.Optional[random.Random] = None) -> ValueType:

		"""Draw a value with probability proportional to its weight."""

		if len(self._values) == 1:
			return self._values[0]

		rng = rng or random.Random()

		return self.lookup(rng.randint(1, self.total))
