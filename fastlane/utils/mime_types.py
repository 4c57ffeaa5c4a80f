"""Static extension to MIME type table"""

from pathlib import PurePath

DEFAULT_CONTENT_TYPE = "application/octet-stream"

# Lowercase extension (with dot) -> content type
EXTENSION_CONTENT_TYPES = {
    # Images
    ".jpg": "image/jpeg",
    ".jpeg": "image/jpeg",
    ".png": "image/png",
    ".gif": "image/gif",
    ".webp": "image/webp",
    ".heic": "image/heic",
    ".svg": "image/svg+xml",
    # Video
    ".mp4": "video/mp4",
    ".mov": "video/quicktime",
    ".avi": "video/x-msvideo",
    ".mkv": "video/x-matroska",
    ".webm": "video/webm",
    # Audio
    ".mp3": "audio/mpeg",
    ".wav": "audio/wav",
    ".ogg": "audio/ogg",
    ".m4a": "audio/mp4",
    ".flac": "audio/flac",
    # Documents
    ".pdf": "application/pdf",
    ".txt": "text/plain",
    ".csv": "text/csv",
    ".json": "application/json",
    ".html": "text/html",
    # Archives
    ".zip": "application/zip",
    ".rar": "application/vnd.rar",
    ".7z": "application/x-7z-compressed",
    ".tar": "application/x-tar",
    ".gz": "application/gzip",
    # Packages
    ".apk": "application/vnd.android.package-archive",
}


def guess_content_type(filename: str) -> str:
    """Content type for ``filename`` based on its extension only"""
    ext = PurePath(filename).suffix.lower()
    return EXTENSION_CONTENT_TYPES.get(ext, DEFAULT_CONTENT_TYPE)
