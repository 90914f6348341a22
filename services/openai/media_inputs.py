"""Utilities to build multimodal input payloads for the Responses API."""

import base64
from typing import Any, Dict, List, Optional, Sequence

from models.uploaded_image import UploadedImage


def to_image_data_url(image: UploadedImage) -> str:
    """Convert raw image bytes into a data URL suitable for vision input."""
    if not image.data:
        raise ValueError("Image bytes are required for vision input.")
    encoded = base64.b64encode(image.data).decode("utf-8")
    return f"data:{image.content_type};base64,{encoded}"


def build_inputs(
    prompt: str,
    images: Sequence[UploadedImage] = (),
    *,
    system_prompt: Optional[str] = None,
) -> List[Dict[str, Any]]:
    """Build the Responses API input array: optional system text, the prompt, then every image."""
    inputs: List[Dict[str, Any]] = []
    if system_prompt:
        inputs.append(
            {"type": "message", "role": "system", "content": [{"type": "input_text", "text": system_prompt}]}
        )

    content: List[Dict[str, Any]] = [{"type": "input_text", "text": prompt}]
    content.extend({"type": "input_image", "image_url": to_image_data_url(image)} for image in images)
    inputs.append({"type": "message", "role": "user", "content": content})
    return inputs
