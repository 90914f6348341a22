"""Durable session store backed by SQLite through aiosqlite."""

from __future__ import annotations

import logging
import time
from typing import Callable, Optional, Sequence, Set

from dal.session_dal import SessionDAL, SessionRow
from models.analysis_models import AnalysisResult
from models.session_models import ConversationTurn, Session
from services.sessions.session_store import DEFAULT_TTL_SECONDS, SessionStore
from utils.database_init import AsyncDatabaseInitializer

LOGGER = logging.getLogger(__name__)


class SqliteSessionStore(SessionStore):
	"""Session store whose records survive process restarts."""

	def __init__(
		self,
		db_initializer: AsyncDatabaseInitializer,
		ttl_seconds: int = DEFAULT_TTL_SECONDS,
		clock: Callable[[], float] = time.time,
	) -> None:
		super().__init__(ttl_seconds, clock)
		self.db_initializer = db_initializer
		self.dal = SessionDAL(db_initializer)

	async def open(self) -> None:
		await self.db_initializer.ensure_database()
		LOGGER.info("SQLite session store ready at %s", self.db_initializer.db_path)

	async def create(self, image_refs: Sequence[str], analysis: AnalysisResult) -> str:
		now = self.now()
		session = Session(
			session_id=self.new_session_id(),
			image_refs=list(image_refs),
			analysis=analysis,
			created_at=now,
			expires_at=now + self.ttl_seconds,
		)
		await self.dal.insert_session(
			SessionRow(
				id=session.session_id,
				payload=session.to_payload(),
				created_at=session.created_at,
				expires_at=session.expires_at,
			)
		)
		return session.session_id

	async def get(self, session_id: str) -> Optional[Session]:
		row = await self.dal.get_session(session_id)
		if row is None:
			return None
		if self.now() > row.expires_at:
			await self.delete(session_id)
			return None
		return Session.from_payload(row.id, row.payload, row.created_at, row.expires_at)

	async def update(
		self,
		session_id: str,
		conversation: Sequence[ConversationTurn],
		analysis: Optional[AnalysisResult] = None,
	) -> bool:
		current = await self.get(session_id)
		if current is None:
			return False
		current.conversation = list(conversation)
		if analysis is not None:
			current.analysis = analysis
		now = self.now()
		return await self.dal.update_session(session_id, current.to_payload(), now + self.ttl_seconds, now)

	async def delete(self, session_id: str) -> None:
		await self.dal.delete_session(session_id)
		self.release_lock(session_id)

	async def sweep(self) -> int:
		removed = await self.dal.delete_expired(self.now())
		for session_id in list(self._locks):
			if await self.dal.get_session(session_id) is None:
				self.release_lock(session_id)
		return removed

	async def live_file_refs(self) -> Set[str]:
		refs: Set[str] = set()
		for row in await self.dal.list_live(self.now()):
			refs.update(Session.from_payload(row.id, row.payload, row.created_at, row.expires_at).file_refs())
		return refs
