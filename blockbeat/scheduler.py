"""Beat-synchronized scheduling across process blocks.

The host hands over one window of beats at a time. ``BeatScheduler`` walks
each window with a fine scan cursor and reports every beat at which the
persisted trigger comes due, then moves the trigger on by the caller's step.
State survives between windows so nothing is fired twice or dropped at a
block boundary.

While the transport cycles, a window may run past the loop's right edge. The
scan then folds back to the loop's left edge and keeps going until it has
covered the wrapped part of the window, forcing the trigger to follow.

Example:
	```python
	scheduler = blockbeat.scheduler.BeatScheduler()

	for window in transport.windows(64):
		for beat in scheduler.process(window, step=0.25):
			sink.emit_at(beat, blockbeat.events.NoteOn(pitch=60))
	```
"""

import dataclasses
import logging
import math
import typing

import blockbeat.constants.durations
import blockbeat.exceptions
import blockbeat.transport


logger = logging.getLogger(__name__)

# Scan positions are rounded to this many decimals so they never accumulate
# floating-point error across a long window.
_CURSOR_PRECISION = 9

StepType = typing.Union[float, typing.Callable[[float], float]]
CursorHook = typing.Callable[[float], None]


@dataclasses.dataclass
class SchedulerState:

	"""
	Everything a scheduler remembers between windows.

	``trigger`` is ``None`` while unset (before the first playing window and
	after every stop).
	"""

	trigger: typing.Optional[float] = None
	fired: int = 0
	drift_count: int = 0

	@property
	def is_set (self) -> bool:

		return self.trigger is not None

	def reset (self) -> None:

		"""Forget the trigger so the next playing window starts fresh."""

		self.trigger = None


class BeatScheduler:

	"""
	Computes which beats of each window a repeating event should fire on.
	"""

	def __init__ (
		self,
		increment: float = blockbeat.constants.durations.SCAN_INCREMENT,
		state: typing.Optional[SchedulerState] = None
	) -> None:

		"""Initialize the scheduler with a scan increment and optional shared state.

		Parameters:
			increment: Distance between scan positions, in beats. Must be finer
				than the shortest step the caller will use.
			state: Existing state to continue from. A fresh ``SchedulerState``
				is created when omitted.
		"""

		if not increment > 0:
			raise blockbeat.exceptions.InvalidConfiguration("Scan increment must be positive")

		self.increment = increment
		self.tolerance = increment / 2
		self.state = state if state is not None else SchedulerState()

	def reset (self) -> None:

		self.state.reset()

	def process (self, window: blockbeat.transport.WindowInfo, step: StepType, on_cursor: typing.Optional[CursorHook] = None) -> typing.List[float]:

		"""Return the beats inside ``window`` at which the trigger fires.

		Parameters:
			window: The current process block.
			step: Beats to advance the trigger after each firing. Either a
				number, or a callable taking the fired beat and returning the
				length to advance by - generate the events for that beat inside
				the callable.
			on_cursor: Optional callable invoked with every scan position, after
				loop folding. Components that must stay phase-locked to the scan
				(envelopes) advance here.

		Returns:
			Fired beats in the order they were reached. Beats that wrapped past
			the loop's right edge are reported at their folded position, so
			every beat of a looping window is below ``loop.right``.
		"""

		state = self.state

		if not window.playing:
			if state.is_set:
				logger.debug("Transport stopped - trigger reset")
			state.reset()
			return []

		if not callable(step):
			_check_step(step)

		loop = window.loop if window.looping else None

		if state.trigger is None:
			state.trigger = window.start

		if loop is not None and state.trigger >= loop.right:
			state.trigger = self._reanchor(window, loop)

		if state.trigger < window.start - self.tolerance:
			# Only a jump in the playhead without a stop can leave the trigger behind the window.
			state.drift_count += 1
			logger.warning(f"Trigger {state.trigger:.4f} fell behind window starting at {window.start:.4f} - realigning")
			state.trigger = window.start

		cycle_end: typing.Optional[float] = None

		if loop is not None and window.end >= loop.right:
			cycle_end = window.end - loop.length

			if cycle_end > loop.right:
				logger.warning(f"Window [{window.start:.3f}, {window.end:.3f}) is longer than the loop - wrapped part truncated")
				cycle_end = loop.right

		fired: typing.List[float] = []
		origin = window.start
		index = 0
		cursor = window.start
		wrapped = False

		while cursor < (cycle_end if wrapped else window.end):

			if loop is not None and cycle_end is not None and not wrapped and cursor >= loop.right:
				origin -= loop.length
				cursor = round(origin + index * self.increment, _CURSOR_PRECISION)

				# An overshoot smaller than one increment is only the block's
				# offset from the scan grid, so resume exactly on the left edge.
				if cursor - loop.left < self.increment:
					origin = loop.left - index * self.increment
					cursor = loop.left

				state.trigger = cursor
				wrapped = True

				if cursor >= cycle_end:
					break

			if on_cursor is not None:
				on_cursor(cursor)

			bound = cycle_end if wrapped else window.end

			if loop is not None and not wrapped:
				bound = min(bound, loop.right)

			trigger = state.trigger

			if abs(cursor - trigger) <= self.tolerance and trigger < bound:
				fired.append(trigger)
				state.fired += 1
				state.trigger = trigger + self._step_length(step, trigger)

			index += 1
			cursor = round(origin + index * self.increment, _CURSOR_PRECISION)

			if state.trigger < cursor - self.tolerance:
				state.trigger = cursor

		return fired

	def _reanchor (self, window: blockbeat.transport.WindowInfo, loop: blockbeat.transport.LoopRegion) -> float:

		"""Pull a trigger that overshot the loop back to where the scan can reach it."""

		trigger = max(loop.right, window.end)

		# Starting playback on the loop's first beat: the right edge and the
		# window start are the same musical position, so fire it only once.
		if trigger == loop.right and loop.left <= window.start < loop.left + 1:
			trigger = window.start

		return trigger

	def _step_length (self, step: StepType, beat: float) -> float:

		if not callable(step):
			return float(step)

		length = step(beat)

		if length is None or not length > 0 or not math.isfinite(length):
			logger.warning(f"Step at beat {beat:.3f} returned {length!r} - advancing by one scan increment")
			return self.increment

		return float(length)


def _check_step (step: float) -> None:

	if not step > 0 or not math.isfinite(step):
		raise blockbeat.exceptions.InvalidConfiguration(f"Scheduler step must be a positive number of beats, got {step!r}")


def fold_beat (beat: float, window: blockbeat.transport.WindowInfo) -> float:

	"""Fold a beat that lands past the loop's right edge back into the loop.

	Outside of looping the beat is returned unchanged.
	"""

	if not window.looping or window.loop is None:
		return beat

	loop = window.loop

	while beat >= loop.right:
		beat -= loop.length

	return beat


def note_off_beat (on_beat: float, length: float, window: blockbeat.transport.WindowInfo) -> float:

	"""Return the beat a note started at ``on_beat`` should end on.

	A non-positive length would end the note before it starts, so it is
	clamped forward to one scan increment.
	"""

	if not length > 0:
		logger.warning(f"Note at beat {on_beat:.3f} has length {length!r} - clamped to {blockbeat.constants.durations.SCAN_INCREMENT}")
		length = blockbeat.constants.durations.SCAN_INCREMENT

	return fold_beat(on_beat + length, window)
