"""Errors raised by the generation session core."""

from __future__ import annotations


class SessionError(RuntimeError):
	"""Base class for session contract violations."""


class InvalidPhaseError(SessionError):
	"""An operation was requested from a phase that does not allow it."""

	def __init__(self, operation: str, phase) -> None:
		self.operation = operation
		self.phase = phase
		super().__init__(f"Cannot {operation} while session is {getattr(phase, 'value', phase)}.")


class ChannelBusyError(SessionError):
	"""A channel was opened while another handle is still streaming."""
