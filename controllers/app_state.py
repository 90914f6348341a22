"""Accessors for shared services attached to `app.state` at startup."""

from fastapi import HTTPException, Request

from services.image_store import ImageStore
from services.openai.model_gateway import ModelGateway
from services.sessions.session_store import SessionStore


def get_model_gateway(request: Request) -> ModelGateway:
    """Return the model gateway, or fail with 503 when no API key was configured."""
    gateway = getattr(request.app.state, "model_gateway", None)
    if gateway is None:
        raise HTTPException(
            status_code=503,
            detail="AI model is not configured. Set OPENAI_API_KEY and restart the service.",
        )
    return gateway


def get_session_store(request: Request) -> SessionStore:
    store = getattr(request.app.state, "session_store", None)
    if store is None:
        raise HTTPException(status_code=500, detail="Session store unavailable")
    return store


def get_image_store(request: Request) -> ImageStore:
    image_store = getattr(request.app.state, "image_store", None)
    if image_store is None:
        raise HTTPException(status_code=500, detail="Image store unavailable")
    return image_store
