"""Finite-state controller for a single generation session."""

from __future__ import annotations

import logging
from typing import Dict, Tuple

from models.generation_models import Cancelled, Done, Failed, Log, Replace, StreamEvent, Token
from models.session_models import Phase, SessionState
from services.realtime.errors import InvalidPhaseError

LOGGER = logging.getLogger(__name__)

CREATE = "create"
UPDATE = "update"
INSTRUCT = "generate instruction"
FINISH = "finish"
STOP = "stop"
RESET = "reset"

ACTIVE_PHASES = frozenset({Phase.GENERATING, Phase.REFINING})

TRANSITIONS: Dict[Tuple[str, Phase], Phase] = {
	(CREATE, Phase.INITIAL): Phase.GENERATING,
	(UPDATE, Phase.READY): Phase.GENERATING,
	(INSTRUCT, Phase.READY): Phase.REFINING,
	(FINISH, Phase.GENERATING): Phase.READY,
	(FINISH, Phase.REFINING): Phase.READY,
	(STOP, Phase.GENERATING): Phase.READY,
	(STOP, Phase.REFINING): Phase.READY,
}


class SessionStateMachine:
	"""Own the session fields and only let legal operations change them."""

	def __init__(self, state: SessionState | None = None) -> None:
		self.state = state or SessionState()

	@property
	def phase(self) -> Phase:
		return self.state.phase

	@property
	def is_active(self) -> bool:
		"""True while a stream is writing into the session."""
		return self.state.phase in ACTIVE_PHASES

	def can(self, operation: str) -> bool:
		if operation == RESET:
			return True
		return (operation, self.state.phase) in TRANSITIONS

	def require(self, operation: str) -> None:
		"""Raise InvalidPhaseError, leaving state untouched, if ``operation`` is illegal."""
		if not self.can(operation):
			raise InvalidPhaseError(operation, self.state.phase)

	def transition(self, operation: str) -> Phase:
		"""Move to the phase reached by ``operation`` from the current phase."""
		self.require(operation)
		previous = self.state.phase
		target = Phase.INITIAL if operation == RESET else TRANSITIONS[(operation, previous)]
		self.state.phase = target
		LOGGER.debug("Session phase %s -> %s (%s)", previous.value, target.value, operation)
		return target

	def begin_generation(self, operation: str, reference_images=None) -> None:
		"""Enter GENERATING for a create or update request."""
		self.transition(operation)
		if reference_images is not None:
			self.state.reference_images = list(reference_images)
		self.state.console_log = []
		if operation == UPDATE:
			self.state.output_buffer = ""
			self.state.pending_instruction = ""

	def begin_refinement(self) -> None:
		"""Enter REFINING; the instruction is rebuilt from the stream."""
		self.transition(INSTRUCT)
		self.state.pending_instruction = ""
		self.state.mistake_count = 0

	def apply_event(self, event: StreamEvent) -> bool:
		"""Apply one stream event; return True when the session changed."""
		state = self.state
		if not self.is_active:
			return False
		if isinstance(event, Token):
			if state.phase is Phase.GENERATING:
				state.output_buffer += event.text
			else:
				state.pending_instruction += event.text
			return True
		if isinstance(event, Replace):
			if state.phase is Phase.GENERATING:
				state.output_buffer = event.text
			else:
				state.pending_instruction = event.text
			return True
		if isinstance(event, Log):
			state.console_log.append(event.line)
			return True
		if isinstance(event, (Done, Failed)):
			self.transition(FINISH)
			return True
		if isinstance(event, Cancelled):
			self.transition(STOP)
			return True
		return False

	def edit_output_buffer(self, text: str) -> None:
		"""Apply a direct user edit to the generated code."""
		if self.state.phase is not Phase.READY:
			raise InvalidPhaseError("edit code", self.state.phase)
		self.state.output_buffer = text

	def set_pending_instruction(self, text: str) -> None:
		"""Apply user typing to the instruction field."""
		if self.state.phase is not Phase.READY:
			raise InvalidPhaseError("edit instruction", self.state.phase)
		self.state.pending_instruction = text

	def reset(self) -> None:
		"""Return every field to its initial value."""
		previous = self.state.phase
		self.state = SessionState()
		LOGGER.debug("Session phase %s -> %s (%s)", previous.value, Phase.INITIAL.value, RESET)
