"""Session operations combining the channel, history ledger and state machine."""

from __future__ import annotations

import logging
from functools import partial
from typing import Any, Callable, Dict, List, Optional, Sequence
from uuid import uuid4

from models.generation_models import (
	CreateRequest,
	Done,
	GenerationRequest,
	InstructionRequest,
	StreamEvent,
	UpdateRequest,
	is_terminal,
)
from models.session_models import HistoryEntry, Phase, SessionState
from models.settings_models import AmbientSettings, merge_params
from services.realtime.channel import ChannelAdapter, ChannelHandle
from services.realtime.diagnostics import (
	DEFAULT_PARSER,
	InstructionSummary,
	MistakeParser,
	apply_instruction_side_effects,
	count_mistakes,
)
from services.realtime.errors import InvalidPhaseError
from services.realtime.history_ledger import HistoryLedger
from services.realtime.snapshot import LatestSnapshot, SnapshotProvider, capture_snapshot
from services.realtime.state_machine import CREATE, INSTRUCT, STOP, UPDATE, SessionStateMachine

LOGGER = logging.getLogger(__name__)

Observer = Callable[[Dict[str, Any]], None]


class SessionOrchestrator:
	"""Drive one create -> refine lifecycle.

	``create``, ``update`` and ``generate_instruction`` return as soon as the
	stream is opened; progress arrives later through the channel callback and
	is published to observers. Illegal calls raise ``InvalidPhaseError``
	before anything is mutated.
	"""

	def __init__(
		self,
		channel: ChannelAdapter,
		settings: Optional[AmbientSettings] = None,
		snapshot: Optional[SnapshotProvider] = None,
		parser: MistakeParser = DEFAULT_PARSER,
		session_id: Optional[str] = None,
	) -> None:
		self.session_id = session_id or uuid4().hex
		self.channel = channel
		self.settings = settings or AmbientSettings()
		self.snapshot = snapshot
		self.parser = parser
		self.machine = SessionStateMachine()
		self.history = HistoryLedger()
		self.last_instruction: Optional[InstructionSummary] = None
		self._handle: Optional[ChannelHandle] = None
		self._generation = 0
		self._observers: List[Observer] = []

	@property
	def state(self) -> SessionState:
		return self.machine.state

	@property
	def phase(self) -> Phase:
		return self.machine.phase

	@property
	def active_handle(self) -> Optional[ChannelHandle]:
		return self._handle

	def subscribe(self, observer: Observer) -> Callable[[], None]:
		"""Register ``observer`` for change notifications; return an unsubscribe function."""
		self._observers.append(observer)

		def unsubscribe() -> None:
			if observer in self._observers:
				self._observers.remove(observer)

		return unsubscribe

	def snapshot_state(self) -> Dict[str, Any]:
		data = self.state.as_dict()
		data["session_id"] = self.session_id
		data["history_length"] = len(self.history)
		return data

	def _notify(self) -> None:
		data = self.snapshot_state()
		for observer in list(self._observers):
			try:
				observer(data)
			except Exception:
				LOGGER.exception("Session observer failed for %s", self.session_id)

	async def create(self, images: Sequence[str]) -> bool:
		"""Start generating code from the first reference image."""
		images = [image for image in images or [] if image]
		if not images:
			LOGGER.debug("Ignoring create without reference images")
			return False
		self.machine.require(CREATE)
		self._open(CreateRequest(image=images[0]))
		self.machine.begin_generation(CREATE, images)
		self._notify()
		return True

	async def update(self) -> bool:
		"""Regenerate the code from the history plus the current code and instruction."""
		self.machine.require(UPDATE)
		result_image = ""
		if self.state.include_result_image:
			result_image = await capture_snapshot(self.snapshot)
			self.machine.require(UPDATE)
		state = self.state
		entry = HistoryEntry(prior_code=state.output_buffer, instruction_applied=state.pending_instruction)
		request = UpdateRequest(
			image=state.reference_images[0],
			history=self.history.snapshot() + (entry,),
			result_image=result_image or None,
		)
		self._open(request)
		self.history.append(entry.prior_code, entry.instruction_applied)
		self.machine.begin_generation(UPDATE)
		self._notify()
		return True

	async def generate_instruction(self) -> bool:
		"""Ask the model to list what differs between the reference and the result."""
		self.machine.require(INSTRUCT)
		result_image = await capture_snapshot(self.snapshot)
		self.machine.require(INSTRUCT)
		request = InstructionRequest(image=self.state.reference_images[0], result_image=result_image)
		self._open(request)
		self.machine.begin_refinement()
		self._notify()
		return True

	def stop(self) -> bool:
		"""Cancel the active stream and keep whatever was produced so far."""
		if not self.machine.is_active:
			return False
		self._release_handle()
		self.machine.transition(STOP)
		self._notify()
		return True

	def reset(self) -> None:
		"""Cancel any stream and return the session to its initial values."""
		self._release_handle()
		self.machine.reset()
		self.history.clear()
		self.last_instruction = None
		if isinstance(self.snapshot, LatestSnapshot):
			self.snapshot.clear()
		self._notify()

	def set_pending_instruction(self, text: str) -> None:
		self.machine.set_pending_instruction(text or "")
		self._notify()

	def set_include_result_image(self, include: bool) -> None:
		self.state.include_result_image = bool(include)
		self._notify()

	def edit_output_buffer(self, text: str) -> None:
		self.machine.edit_output_buffer(text or "")
		self._notify()

	def download(self) -> str:
		"""Return the current code for saving as ``index.html``."""
		if self.phase is not Phase.READY:
			raise InvalidPhaseError("download code", self.phase)
		return self.state.output_buffer

	def _open(self, request: GenerationRequest) -> None:
		params = merge_params(request.to_params(), self.settings)
		generation = self._generation + 1
		handle = self.channel.open(request, params, partial(self._on_event, generation))
		self._generation = generation
		self._handle = handle
		LOGGER.info("Session %s opened %s request", self.session_id, request.generation_type)

	def _release_handle(self) -> None:
		handle = self._handle
		self._handle = None
		self._generation += 1
		try:
			self.channel.cancel(handle)
		except Exception as exc:
			LOGGER.warning("Cancelling %r failed: %s", handle, exc)

	def _on_event(self, generation: int, event: StreamEvent) -> None:
		if generation != self._generation:
			LOGGER.debug("Discarding %r from stale stream %d", event, generation)
			return
		was_refining = self.phase is Phase.REFINING
		changed = self.machine.apply_event(event)
		if is_terminal(event):
			self._handle = None
			if was_refining and isinstance(event, Done):
				self._complete_instruction(self.state.pending_instruction)
		if changed:
			self._notify()

	def _complete_instruction(self, instruction: str) -> None:
		self.state.mistake_count = count_mistakes(instruction, self.parser)
		self.last_instruction = apply_instruction_side_effects(instruction, self.parser)
		LOGGER.info(
			"Session %s instruction complete with %d mistakes", self.session_id, self.state.mistake_count
		)
