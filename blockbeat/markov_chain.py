import random
import typing

import blockbeat.exceptions
import blockbeat.weighted_pool


StateType = typing.TypeVar("StateType")

START_KEY = "START"

TransitionsType = typing.Mapping[
	StateType,
	typing.Union[
		blockbeat.weighted_pool.WeightedPool[StateType],
		typing.Sequence[typing.Tuple[int, StateType]]
	]
]


class MarkovChain (typing.Generic[StateType]):

	"""
	A weighted Markov chain over arbitrary states.

	Each state owns a ``WeightedPool`` of the states that may follow it.
	"""

	def __init__ (
		self,
		transitions: TransitionsType,
		initial_state: typing.Optional[StateType] = None,
		rng: typing.Optional[random.Random] = None
	) -> None:

		"""
		Initialize the chain with transitions and an optional initial state.

		Transitions may be given as ready-built pools or as ``(weight, state)``
		sequences, which are built into pools here.
		"""

		if not transitions:
			raise blockbeat.exceptions.InvalidConfiguration("Transitions cannot be empty")

		self.transitions: typing.Dict[StateType, blockbeat.weighted_pool.WeightedPool[StateType]] = {}

		for state, options in transitions.items():

			if isinstance(options, blockbeat.weighted_pool.WeightedPool):
				self.transitions[state] = options

			elif options:
				self.transitions[state] = blockbeat.weighted_pool.WeightedPool.build(options)

		self.rng = rng or random.Random()

		if initial_state is None:
			initial_state = next(iter(transitions))

		if initial_state not in transitions:
			raise blockbeat.exceptions.InvalidConfiguration(f"Initial state {initial_state!r} must exist in transitions")

		self.initial_state = initial_state
		self.state = initial_state


	@classmethod
	def from_progression_map (cls, progression: typing.Mapping[str, typing.Any], rng: typing.Optional[random.Random] = None) -> "MarkovChain[str]":

		"""Build a chain from a progression map.

		The map names its first chord under ``"START"`` and lists, for every
		chord, the ``(weight, next_chord)`` pairs it may move to.

		Example:
			```python
			chain = MarkovChain.from_progression_map({
				"START": "I",
				"I":  [(60, "IV"), (40, "V")],
				"IV": [(100, "V")],
				"V":  [(80, "I"), (20, "vi")],
				"vi": [(100, "IV")],
			})
			```
		"""

		if START_KEY not in progression:
			raise blockbeat.exceptions.InvalidConfiguration(f"Progression map needs a {START_KEY!r} entry")

		transitions = {chord: [tuple(option) for option in options] for chord, options in progression.items() if chord != START_KEY}

		for chord, options in transitions.items():
			for _, target in options:
				if target not in transitions:
					raise blockbeat.exceptions.InvalidConfiguration(f"Chord {chord!r} moves to {target!r}, which has no entry")

		return cls(transitions=transitions, initial_state=progression[START_KEY], rng=rng)


	def step (self) -> StateType:

		"""
		Advance to the next state and return it.
		"""

		pool = self.transitions.get(self.state)

		if pool is None:
			# A state with no outgoing transitions holds.
			return self.state

		self.state = pool.draw(self.rng)

		return self.state


	def reset (self) -> None:

		"""
		Return to the initial state.
		"""

		self.state = self.initial_state
