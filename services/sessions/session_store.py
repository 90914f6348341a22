"""Session stores mapping an opaque session id to a stored analysis and chat.

Records expire `ttl_seconds` after creation or their last update (sliding
expiry). Readers never see expired records: `get` deletes them lazily and
`sweep` removes them in bulk. Missing or expired keys are reported as
`None`/`False`, never raised.
"""

from __future__ import annotations

import asyncio
import copy
import time
from abc import ABC, abstractmethod
from typing import Callable, Dict, List, Optional, Sequence, Set
from uuid import uuid4

from models.analysis_models import AnalysisResult
from models.session_models import ConversationTurn, Session

DEFAULT_TTL_SECONDS = 24 * 60 * 60


class SessionStore(ABC):
	"""Interface shared by the in-memory and SQLite session stores."""

	def __init__(self, ttl_seconds: int = DEFAULT_TTL_SECONDS, clock: Callable[[], float] = time.time) -> None:
		if ttl_seconds <= 0:
			raise ValueError("Session TTL must be positive.")
		self.ttl_seconds = ttl_seconds
		self._clock = clock
		self._locks: Dict[str, asyncio.Lock] = {}

	def now(self) -> float:
		return self._clock()

	def new_session_id(self) -> str:
		return uuid4().hex

	def lock(self, session_id: str) -> asyncio.Lock:
		"""Return the lock serializing read-modify-write cycles on one session."""
		lock = self._locks.get(session_id)
		if lock is None:
			lock = self._locks[session_id] = asyncio.Lock()
		return lock

	def release_lock(self, session_id: str) -> None:
		"""Drop the lock for a session that no longer exists, unless it is still held."""
		lock = self._locks.get(session_id)
		if lock is not None and not lock.locked():
			del self._locks[session_id]

	async def open(self) -> None:
		"""Prepare backing resources; called once at application startup."""

	async def close(self) -> None:
		"""Release backing resources; called once at application shutdown."""

	@abstractmethod
	async def create(self, image_refs: Sequence[str], analysis: AnalysisResult) -> str:
		"""Store a new session and return its id."""

	@abstractmethod
	async def get(self, session_id: str) -> Optional[Session]:
		"""Return a copy of a live session, or None if missing or expired."""

	@abstractmethod
	async def update(
		self,
		session_id: str,
		conversation: Sequence[ConversationTurn],
		analysis: Optional[AnalysisResult] = None,
	) -> bool:
		"""Replace the conversation (and optionally the analysis) and refresh the expiry."""

	@abstractmethod
	async def delete(self, session_id: str) -> None:
		"""Remove a session; deleting a missing id is a no-op."""

	@abstractmethod
	async def sweep(self) -> int:
		"""Remove every expired session and return how many were removed."""

	@abstractmethod
	async def live_file_refs(self) -> Set[str]:
		"""Return the upload references held by every live session."""


class InMemorySessionStore(SessionStore):
	"""Single-process store keeping sessions in a dict."""

	def __init__(self, ttl_seconds: int = DEFAULT_TTL_SECONDS, clock: Callable[[], float] = time.time) -> None:
		super().__init__(ttl_seconds, clock)
		self._sessions: Dict[str, Session] = {}

	async def create(self, image_refs: Sequence[str], analysis: AnalysisResult) -> str:
		now = self.now()
		session_id = self.new_session_id()
		self._sessions[session_id] = Session(
			session_id=session_id,
			image_refs=list(image_refs),
			analysis=analysis.model_copy(deep=True),
			created_at=now,
			expires_at=now + self.ttl_seconds,
		)
		return session_id

	async def get(self, session_id: str) -> Optional[Session]:
		state = self._sessions.get(session_id)
		if state is None:
			return None
		if state.is_expired(self.now()):
			await self.delete(session_id)
			return None
		return copy.deepcopy(state)

	async def update(
		self,
		session_id: str,
		conversation: Sequence[ConversationTurn],
		analysis: Optional[AnalysisResult] = None,
	) -> bool:
		state = self._sessions.get(session_id)
		now = self.now()
		if state is None or state.is_expired(now):
			return False
		state.conversation = [ConversationTurn(turn.role, turn.content) for turn in conversation]
		if analysis is not None:
			state.analysis = analysis.model_copy(deep=True)
		state.expires_at = now + self.ttl_seconds
		return True

	async def delete(self, session_id: str) -> None:
		self._sessions.pop(session_id, None)
		self.release_lock(session_id)

	async def sweep(self) -> int:
		now = self.now()
		expired: List[str] = [sid for sid, state in self._sessions.items() if state.is_expired(now)]
		for session_id in expired:
			await self.delete(session_id)
		for session_id in [sid for sid in self._locks if sid not in self._sessions]:
			self.release_lock(session_id)
		return len(expired)

	async def live_file_refs(self) -> Set[str]:
		now = self.now()
		refs: Set[str] = set()
		for state in self._sessions.values():
			if not state.is_expired(now):
				refs.update(state.file_refs())
		return refs

	def __len__(self) -> int:
		return len(self._sessions)
