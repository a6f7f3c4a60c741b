"""
Content Type Detection Utility
Detects MIME type from file extension, with fallback chain
"""

import mimetypes
import logging
from pathlib import Path
from typing import Optional

logger = logging.getLogger(__name__)

# Extension to MIME type mapping for the document formats the indexing service accepts
EXTENSION_MIME_MAP = {
    ".pdf": "application/pdf",
    ".doc": "application/msword",
    ".docx": "application/vnd.openxmlformats-officedocument.wordprocessingml.document",
    ".txt": "text/plain",
    ".md": "text/markdown",
    ".markdown": "text/markdown",
    ".csv": "text/csv",
    ".html": "text/html",
    ".htm": "text/html",
    ".xlsx": "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
    ".pptx": "application/vnd.openxmlformats-officedocument.presentationml.presentation",
}


def detect_content_type(filename: str, client_content_type: Optional[str] = None) -> str:
    """
    Detect content type with fallback chain:
    1. File extension mapping
    2. Python mimetypes module
    3. Client-provided content type (if not generic)
    4. Default to application/octet-stream
    """
    ext = Path(filename).suffix.lower()

    if ext in EXTENSION_MIME_MAP:
        return EXTENSION_MIME_MAP[ext]

    mime_type, _ = mimetypes.guess_type(filename)
    if mime_type and mime_type != "application/octet-stream":
        return mime_type

    if client_content_type and client_content_type != "application/octet-stream":
        logger.debug(f"Content type from client: {filename} -> {client_content_type}")
        return client_content_type

    logger.warning(f"Could not detect content type for {filename}, using application/octet-stream")
    return "application/octet-stream"
