import logging
from typing import Any, Dict, List, Optional

from fastapi import HTTPException, Request, UploadFile

from config import AppConfig
from controllers.app_state import get_image_store, get_model_gateway, get_session_store
from services.analysis_pipeline import AnalysisPipeline, assemble_analysis
from services.errors import InvalidInput, ModelResponseUnparseable, UpstreamModelError
from utils.media_validation import read_image_uploads

LOGGER = logging.getLogger(__name__)


async def analyze_images(
    request: Request,
    files: Optional[List[UploadFile]],
    location: Optional[str] = None,
) -> Dict[str, Any]:
    """Handle image upload, model analysis, thumbnailing, storage, and session creation.

    Args:
        request: FastAPI Request object (used to access app.state for shared services).
        files: Uploaded clothing photos (1-3 JPEG/PNG files).
        location: Optional seller location used to localize the price estimate.

    Returns:
        A dict containing `sessionId` and the camelCase `analysis` payload.

    Raises:
        HTTPException(400) for invalid uploads, 503 when no model is configured,
        and 500 when a model call or its JSON answer fails. Nothing is stored
        in the failure cases.
    """
    config: AppConfig = request.app.state.config

    try:
        images = await read_image_uploads(
            files, max_files=config.max_images, max_bytes=config.max_upload_bytes
        )
    except InvalidInput as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc

    gateway = get_model_gateway(request)
    store = get_session_store(request)
    image_store = get_image_store(request)

    cleaned_location = location.strip() if location and location.strip() else None

    try:
        output = await AnalysisPipeline(gateway).run(images, cleaned_location)
    except (UpstreamModelError, ModelResponseUnparseable) as exc:
        LOGGER.error("Analysis failed: %s", exc)
        raise HTTPException(status_code=500, detail={"error": "Analysis failed", "details": str(exc)}) from exc

    stored = await image_store.save_submission(images)
    analysis = assemble_analysis(output, stored.thumbnails)
    session_id = await store.create(stored.originals, analysis)

    LOGGER.info(
        "Analysis complete for session %s: verdict=%s score=%s brand=%s",
        session_id,
        analysis.authenticity.verdict,
        analysis.authenticity.score,
        analysis.brand.name,
    )
    return {"sessionId": session_id, "analysis": analysis.to_api()}
