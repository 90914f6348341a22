from typing import List, Optional

from fastapi import APIRouter, File, Form, HTTPException, Request, UploadFile

from controllers.analysis_controller import analyze_images

router = APIRouter(prefix="/api")


@router.post("/analyze")
async def analyze_route(
	request: Request,
	images: Optional[List[UploadFile]] = File(None),
	location: Optional[str] = Form(None),
):
	"""Analyze 1-3 clothing photos and open a chat session for the result."""
	try:
		return await analyze_images(request, images, location)
	except HTTPException:
		raise
	except Exception as exc:
		raise HTTPException(status_code=500, detail={"error": "Analysis failed", "details": str(exc)})
