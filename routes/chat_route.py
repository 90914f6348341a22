"""FastAPI routes for follow-up chat and service health."""

from datetime import datetime, timezone
from typing import Optional

from fastapi import APIRouter, HTTPException, Request
from pydantic import BaseModel, ConfigDict, Field

from controllers.chat_controller import continue_chat

router = APIRouter(prefix="/api")


class ChatPayload(BaseModel):
	model_config = ConfigDict(populate_by_name=True)

	session_id: Optional[str] = Field(default=None, alias="sessionId")
	message: Optional[str] = None


@router.post("/chat")
async def chat_route(request: Request, payload: ChatPayload):
	try:
		return await continue_chat(request, payload.session_id, payload.message)
	except HTTPException:
		raise
	except Exception as exc:
		raise HTTPException(status_code=500, detail={"error": "Chat failed", "details": str(exc)})


@router.get("/health")
async def health_route():
	return {"status": "ok", "timestamp": datetime.now(timezone.utc).isoformat()}
