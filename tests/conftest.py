import random
import typing

import pytest

import blockbeat.events
import blockbeat.transport


@pytest.fixture
def recorder () -> blockbeat.events.EventRecorder:

	"""A fresh sink that keeps every emitted event."""

	return blockbeat.events.EventRecorder()


@pytest.fixture
def rng () -> random.Random:

	"""A seeded random source so draws are repeatable."""

	return random.Random(1234)


def contiguous_windows (start: float, block_beats: float, count: int, loop: typing.Optional[blockbeat.transport.LoopRegion] = None) -> typing.List[blockbeat.transport.WindowInfo]:

	"""Windows a simulated transport would report, wrapping at ``loop`` when given."""

	transport = blockbeat.transport.SimulatedTransport(block_beats=block_beats, start_beat=start, loop=loop)

	return list(transport.windows(count))


@pytest.fixture
def make_windows () -> typing.Callable[..., typing.List[blockbeat.transport.WindowInfo]]:

	"""Factory fixture for back-to-back windows."""

	return contiguous_windows
