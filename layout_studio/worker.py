"""
Background analysis jobs (Qt-free).

Each job runs on a ``TaskThread`` and never raises: failures come back as
``{"success": False, "error": ...}`` so the session can turn them into a
fallback value or a status message.
"""

import logging

from layout_studio import ai_service
from layout_studio.config import UNKNOWN_LOCATION
from layout_studio.errors import DecodeFailure, MetadataUnavailable
from layout_studio.image_io import ai_payload, decode_data_uri, decode_image, read_exif

logger = logging.getLogger(__name__)


def analyze_upload(data: bytes, mime_type: str) -> dict:
    """Decode an upload, read its EXIF and ask for a location name.

    A decode failure is fatal for the upload. Unreadable EXIF is not: the
    image is still returned with an empty record and ``UNKNOWN_LOCATION``.
    """
    try:
        image = decode_image(data)
    except DecodeFailure as e:
        logger.warning("Could not decode upload: %s", e)
        return {"success": False, "error": str(e)}

    try:
        exif = read_exif(data)
    except MetadataUnavailable as e:
        logger.warning("EXIF unavailable: %s", e)
        return {
            "success": True, "image": image, "exif": {},
            "location": UNKNOWN_LOCATION, "exif_error": str(e),
        }

    payload, payload_mime = ai_payload(image, data, mime_type)
    location = ai_service.suggest_location(payload, payload_mime)
    return {"success": True, "image": image, "exif": exif, "location": location, "exif_error": None}


def detect_subject(image, data: bytes, mime_type: str) -> dict:
    """Ask for a subject mask and decode it. ``mask`` is None when nothing was found."""
    try:
        payload, payload_mime = ai_payload(image, data, mime_type)
        uri = ai_service.detect_main_subject(payload, payload_mime)
        mask = decode_data_uri(uri) if uri else None
        return {"success": True, "mask": mask}
    except Exception as e:
        logger.error("Subject detection failed: %s", e)
        return {"success": False, "error": str(e)}
