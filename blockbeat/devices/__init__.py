"""
Devices share one shape: settings held as a dataclass, one ``process_block``
call per window and ``handle_midi`` for incoming events. The ready-made
devices live in the submodules; ``blockbeat.device_registry`` builds them by name.
"""

import dataclasses
import typing

import blockbeat.events
import blockbeat.transport


SettingsType = typing.TypeVar("SettingsType")


@typing.runtime_checkable
class Device (typing.Protocol):

	"""
	Protocol for anything the host can run once per process block.
	"""

	def process_block (self, window: blockbeat.transport.WindowInfo, output: blockbeat.events.EventSink) -> None:

		"""
		Generate the events that fall inside ``window``.
		"""

		...

	def handle_midi (self, event: blockbeat.events.Event, beat: float, output: blockbeat.events.EventSink) -> None:

		"""
		React to an incoming event arriving at ``beat``.
		"""

		...

	def reset (self) -> None:

		"""
		Drop all playback state after the transport stops.
		"""

		...


class BaseDevice (typing.Generic[SettingsType]):

	"""
	Shared plumbing: settings held as a dataclass and incoming events passed through.

	Subclasses set ``settings_class`` and implement ``_apply()``, which rebuilds
	any derived state from a complete, validated settings object.
	"""

	settings_class: typing.Type[typing.Any]

	def __init__ (self, settings: typing.Optional[SettingsType] = None) -> None:

		self.settings: SettingsType = settings if settings is not None else self.settings_class()
		self._apply(self.settings)

	def configure (self, **changes: typing.Any) -> None:

		"""Change several settings at once.

		The new values are validated together and applied in one step, so the
		device never runs with half of a related group of settings updated.
		"""

		settings = dataclasses.replace(self.settings, **changes)
		self._apply(settings)
		self.settings = settings

	def _apply (self, settings: SettingsType) -> None:

		raise NotImplementedError

	def handle_midi (self, event: blockbeat.events.Event, beat: float, output: blockbeat.events.EventSink) -> None:

		output.emit_at(beat, event)

	def reset (self) -> None:

		return None
