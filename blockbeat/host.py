"""Run a chain of devices against a transport, one process block at a time.

Devices form a chain the way MIDI effects do in a DAW: live input enters the
first device, and whatever a device emits is handed to the next device's
``handle_midi``. Events leaving the last device reach the host's sink. Every
device also gets ``process_block`` once per window, and its generated events
flow down the rest of the chain in the same way.

Example:
	```python
	host = blockbeat.host.Host([groove, gate], sink=recorder, record=True)
	host.run(transport, count=2000)
	blockbeat.midi_file.save_recording(host.recorded_events, "groove.mid", bpm=120)
	```
"""

import logging
import typing

import blockbeat.devices
import blockbeat.events
import blockbeat.transport


logger = logging.getLogger(__name__)


class _Stage:

	"""
	The output handed to one device: forwards into the next device or out of the chain.
	"""

	def __init__ (self, host: "Host", index: int) -> None:

		self.host = host
		self.index = index

	def emit_at (self, beat: float, event: blockbeat.events.Event) -> None:

		self.host._forward(self.index + 1, beat, event)


class Host:

	def __init__ (
		self,
		devices: typing.Sequence[blockbeat.devices.Device],
		sink: typing.Optional[blockbeat.events.EventSink] = None,
		record: bool = False
	) -> None:

		"""Initialize the host with a device chain.

		Parameters:
			devices: Devices in chain order.
			sink: Receives every event that leaves the chain, at its beat.
			record: When True, also keep each event with its position on the
				unrolled timeline (beats since playback started) in
				``recorded_events``.
		"""

		self.devices = list(devices)
		self.sink = sink
		self.recording = record
		self.recorded_events: typing.List[typing.Tuple[float, blockbeat.events.Event]] = []

		self.playing = False
		self.windows_processed = 0
		self.elapsed = 0.0

		self._window: typing.Optional[blockbeat.transport.WindowInfo] = None
		self._window_position = 0.0
		self._stages = [_Stage(self, index) for index in range(len(self.devices))]

	def run (self, transport: blockbeat.transport.TransportWindowSource, count: int) -> None:

		"""Poll ``count`` windows from the transport and process each one."""

		for _ in range(count):
			self.process(transport.poll())

	def process (self, window: blockbeat.transport.WindowInfo) -> None:

		"""Run every device for one window."""

		self.windows_processed += 1

		if not window.playing:

			if self.playing:
				logger.info(f"Playback stopped at beat {window.start:.3f} - sending all notes off")
				self._deliver(window.start, blockbeat.events.ControlChange.all_notes_off())

			self.playing = False
			self._window = None

			for device, stage in zip(self.devices, self._stages):
				device.process_block(window, stage)

			return

		if not self.playing:
			logger.info(f"Playback started at beat {window.start:.3f}")
			self.playing = True

		self._window = window
		self._window_position = self.elapsed

		for device, stage in zip(self.devices, self._stages):
			device.process_block(window, stage)

		self.elapsed += window.length

	def handle_midi (self, event: blockbeat.events.Event, beat: float) -> None:

		"""Feed a live event into the start of the chain."""

		self._forward(0, beat, event)

	def _forward (self, index: int, beat: float, event: blockbeat.events.Event) -> None:

		if index < len(self.devices):
			self.devices[index].handle_midi(event, beat, self._stages[index])
			return

		self._deliver(beat, event)

	def _deliver (self, beat: float, event: blockbeat.events.Event) -> None:

		if self.sink is not None:
			self.sink.emit_at(beat, event)

		if self.recording:
			self.recorded_events.append((self.position_of(beat), event))

	def position_of (self, beat: float) -> float:

		"""Map a beat in the current window to beats elapsed since playback started.

		Beats that were folded back to the loop's left edge are placed after the
		right edge they wrapped past, so the recorded timeline keeps moving forward.
		"""

		window = self._window

		if window is None:
			return self.elapsed

		offset = beat - window.start

		if offset < 0 and window.looping and window.loop is not None:
			loop = window.loop
			offset = (loop.right - window.start) + (beat - loop.left)

			while offset < 0:
				offset += loop.length

		return self._window_position + max(0.0, offset)
