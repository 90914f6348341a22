"""Follow-up chat about a previously analyzed item."""

from __future__ import annotations

import logging
from typing import Any, Dict, Optional

from fastapi import HTTPException, Request

from controllers.app_state import get_model_gateway, get_session_store
from models.session_models import ConversationTurn
from services.errors import SessionNotFound, UpstreamModelError
from services.openai.prompts import chat_context

LOGGER = logging.getLogger(__name__)

SESSION_EXPIRED_DETAIL = "Session not found or expired. Please re-submit your images."


async def continue_chat(request: Request, session_id: Optional[str], message: Optional[str]) -> Dict[str, Any]:
	"""Answer one chat message and append both turns to the session.

	Turns for the same session are serialized with the store's per-session
	lock, so concurrent messages never overwrite each other's history.
	"""
	session_id = (session_id or "").strip()
	message = (message or "").strip()
	if not session_id or not message:
		raise HTTPException(status_code=400, detail="Session ID and message required")

	gateway = get_model_gateway(request)
	store = get_session_store(request)

	try:
		async with store.lock(session_id):
			session = await store.get(session_id)
			if session is None:
				raise SessionNotFound(session_id)

			context = chat_context(session.analysis, session.conversation, message)
			try:
				reply = await gateway.chat(message, context)
			except UpstreamModelError as exc:
				LOGGER.error("Chat failed for session %s: %s", session_id, exc)
				raise HTTPException(status_code=500, detail={"error": "Chat failed", "details": str(exc)}) from exc

			conversation = session.conversation + [
				ConversationTurn(role="user", content=message),
				ConversationTurn(role="assistant", content=reply),
			]
			if not await store.update(session_id, conversation):
				raise SessionNotFound(session_id)
	except SessionNotFound as exc:
		# Unknown or expired ids must not leave a lock behind.
		store.release_lock(session_id)
		raise HTTPException(status_code=404, detail=SESSION_EXPIRED_DETAIL) from exc

	return {"response": reply}
