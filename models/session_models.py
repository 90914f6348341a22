"""Session domain models for the follow-up chat workflow."""

from __future__ import annotations

import time
from dataclasses import dataclass, field
from typing import Any, Dict, List

from models.analysis_models import AnalysisResult

ROLES = ("user", "assistant")


@dataclass
class ConversationTurn:
	"""One message exchanged in a session's chat."""

	role: str
	content: str

	def to_dict(self) -> Dict[str, str]:
		return {"role": self.role, "content": self.content}


@dataclass
class Session:
	"""Stored state for one analyzed item: images, analysis, and chat history."""

	session_id: str
	image_refs: List[str]
	analysis: AnalysisResult
	conversation: List[ConversationTurn] = field(default_factory=list)
	created_at: float = field(default_factory=lambda: time.time())
	expires_at: float = 0.0

	def is_expired(self, now: float) -> bool:
		return now > self.expires_at

	def file_refs(self) -> List[str]:
		"""Upload references (originals and thumbnails) this session points at."""
		return list(self.image_refs) + list(self.analysis.thumbnails)

	def to_payload(self) -> Dict[str, Any]:
		"""Serialize the mutable contents for a durable backend."""
		return {
			"image_refs": list(self.image_refs),
			"analysis": self.analysis.model_dump(mode="json"),
			"conversation": [turn.to_dict() for turn in self.conversation],
		}

	@classmethod
	def from_payload(
		cls, session_id: str, payload: Dict[str, Any], created_at: float, expires_at: float
	) -> "Session":
		return cls(
			session_id=session_id,
			image_refs=list(payload.get("image_refs") or []),
			analysis=AnalysisResult.model_validate(payload["analysis"]),
			conversation=[
				ConversationTurn(role=turn["role"], content=turn["content"])
				for turn in payload.get("conversation") or []
			],
			created_at=created_at,
			expires_at=expires_at,
		)
