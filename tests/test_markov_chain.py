import collections
import random
import unittest

import blockbeat.exceptions
import blockbeat.markov_chain
import blockbeat.weighted_pool


class MarkovChainTests (unittest.TestCase):

	"""
	Tests for the weighted Markov chain utility.
	"""

	def test_single_transition (self) -> None:

		"""
		A single transition should always be selected.
		"""

		transitions = {"A": [(1, "B")], "B": [(1, "A")]}
		chain = blockbeat.markov_chain.MarkovChain(transitions=transitions, initial_state="A", rng=random.Random(1))

		self.assertEqual(chain.step(), "B")
		self.assertEqual(chain.step(), "A")
		self.assertEqual(chain.state, "A")


	def test_accepts_prebuilt_pools (self) -> None:

		"""
		Transitions may be given as weighted pools.
		"""

		pool = blockbeat.weighted_pool.WeightedPool.build([(1, "B")])
		chain = blockbeat.markov_chain.MarkovChain(transitions={"A": pool}, initial_state="A", rng=random.Random(1))

		self.assertEqual(chain.step(), "B")


	def test_state_without_transitions_holds (self) -> None:

		"""
		A state with nowhere to go stays put.
		"""

		chain = blockbeat.markov_chain.MarkovChain(transitions={"A": [(1, "B")], "B": []}, initial_state="A", rng=random.Random(1))

		self.assertEqual(chain.step(), "B")
		self.assertEqual(chain.step(), "B")


	def test_transition_frequencies_follow_weights (self) -> None:

		"""
		Next states are drawn in proportion to their weights.
		"""

		transitions = {"A": [(3, "A"), (1, "B")], "B": [(1, "A")]}
		chain = blockbeat.markov_chain.MarkovChain(transitions=transitions, initial_state="A", rng=random.Random(5))

		counts = collections.Counter()

		for _ in range(20_000):
			chain.state = "A"
			counts[chain.step()] += 1

		self.assertAlmostEqual(counts["A"] / 20_000, 0.75, delta=0.02)


	def test_reset_returns_to_initial_state (self) -> None:

		"""
		Reset goes back to where the chain started.
		"""

		chain = blockbeat.markov_chain.MarkovChain(transitions={"A": [(1, "B")], "B": [(1, "B")]}, initial_state="A", rng=random.Random(1))
		chain.step()

		chain.reset()

		self.assertEqual(chain.state, "A")


	def test_invalid_initial_state_raises (self) -> None:

		"""
		The initial state must be one of the chain's states.
		"""

		with self.assertRaises(blockbeat.exceptions.InvalidConfiguration):
			blockbeat.markov_chain.MarkovChain(transitions={"A": [(1, "A")]}, initial_state="Z")


	def test_empty_transitions_raise (self) -> None:

		"""
		A chain needs at least one state.
		"""

		with self.assertRaises(blockbeat.exceptions.InvalidConfiguration):
			blockbeat.markov_chain.MarkovChain(transitions={})


class ProgressionMapTests (unittest.TestCase):

	"""
	Tests for building chains from chord progression maps.
	"""

	def test_start_key_sets_first_chord (self) -> None:

		"""
		The START entry names the first chord and is not itself a state.
		"""

		chain = blockbeat.markov_chain.MarkovChain.from_progression_map({
			"START": "IV",
			"I": [(1, "IV")],
			"IV": [(1, "V")],
			"V": [(1, "I")],
		}, rng=random.Random(1))

		self.assertEqual(chain.state, "IV")
		self.assertNotIn("START", chain.transitions)
		self.assertEqual([chain.step() for _ in range(4)], ["V", "I", "IV", "V"])


	def test_yaml_style_lists_are_accepted (self) -> None:

		"""
		Pairs given as lists, as YAML produces them, work like tuples.
		"""

		chain = blockbeat.markov_chain.MarkovChain.from_progression_map({"START": "I", "I": [[2, "I"]]})

		self.assertEqual(chain.step(), "I")


	def test_missing_start_raises (self) -> None:

		"""
		A progression map must say where to begin.
		"""

		with self.assertRaises(blockbeat.exceptions.InvalidConfiguration):
			blockbeat.markov_chain.MarkovChain.from_progression_map({"I": [(1, "I")]})


	def test_unknown_target_raises (self) -> None:

		"""
		Every chord a progression moves to must have its own entry.
		"""

		with self.assertRaises(blockbeat.exceptions.InvalidConfiguration):
			blockbeat.markov_chain.MarkovChain.from_progression_map({"START": "I", "I": [(1, "ii")]})
