"""Derive diagnostics from a completed refinement instruction.

The instruction prompt (see ``services.openai.prompts``) asks the model to
enumerate every visual mistake it finds as a numbered list::

    1. The header background should be dark blue.
    2) The sign-up button is missing.

``NumberedListParser`` counts the distinct enumeration indices. When the
model answers with bullets instead, bullets that follow a heading mentioning
"mistake" are counted. Any other text yields zero findings.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from typing import List, Protocol, Tuple

LOGGER = logging.getLogger(__name__)

_NUMBERED = re.compile(r"^\s*(?:[*_]{1,2})?(\d{1,3})[.)](?:[*_]{1,2})?\s+(\S.*)$")
_BULLET = re.compile(r"^\s*[-*•]\s+(\S.*)$")
_HEADING = re.compile(r"mistake", re.IGNORECASE)
_FENCE = re.compile(r"^\s*```[\w-]*\s*$", re.MULTILINE)


class MistakeParser(Protocol):
	"""Pluggable grammar for finding flagged issues in instruction text."""

	def findings(self, text: str) -> List[str]:
		...


class NumberedListParser:
	"""Extract enumerated findings (``1.`` / ``2)``) from instruction text."""

	def findings(self, text: str) -> List[str]:
		numbered: List[Tuple[int, str]] = []
		bullets: List[str] = []
		under_heading = False
		for line in text.splitlines():
			match = _NUMBERED.match(line)
			if match:
				numbered.append((int(match.group(1)), match.group(2).strip()))
				continue
			bullet = _BULLET.match(line)
			if bullet and under_heading:
				bullets.append(bullet.group(1).strip())
				continue
			if line.strip():
				under_heading = bool(_HEADING.search(line)) and not bullet
		if numbered:
			seen = {}
			for index, finding in numbered:
				seen.setdefault(index, finding)
			return list(seen.values())
		return bullets


DEFAULT_PARSER: MistakeParser = NumberedListParser()


def count_mistakes(instruction_text, parser: MistakeParser = DEFAULT_PARSER) -> int:
	"""Return the number of distinct flagged mistakes; 0 on anything unparseable."""
	if not isinstance(instruction_text, str) or not instruction_text.strip():
		return 0
	try:
		return len(parser.findings(instruction_text))
	except Exception:
		LOGGER.debug("Could not parse instruction text for mistakes", exc_info=True)
		return 0


@dataclass(frozen=True)
class InstructionSummary:
	"""Post-processed view of a completed instruction."""

	text: str
	findings: List[str] = field(default_factory=list)


def apply_instruction_side_effects(
	instruction_text: str, parser: MistakeParser = DEFAULT_PARSER
) -> InstructionSummary:
	"""Normalize a completed instruction and report its findings to the log."""
	text = _FENCE.sub("", instruction_text or "").strip()
	try:
		findings = parser.findings(text) if text else []
	except Exception:
		LOGGER.debug("Could not extract findings from instruction", exc_info=True)
		findings = []
	for position, finding in enumerate(findings, start=1):
		LOGGER.info("Instruction finding %d: %s", position, finding)
	return InstructionSummary(text=text, findings=findings)
