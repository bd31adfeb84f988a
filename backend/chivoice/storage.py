# chivoice/storage.py
# Supabase Storage wrapper for recording audio (public read, per-user write paths)

from __future__ import annotations

import time
from typing import Optional, Tuple

try:
    from supabase import create_client, Client  # pip: supabase
    SUPABASE_AVAILABLE = True
except ImportError:
    SUPABASE_AVAILABLE = False
    Client = None  # type: ignore

from .errors import NotConfigured, StorageError
from .settings import settings

CONTENT_TYPE_EXTENSIONS = {
    "audio/webm": "webm",
    "audio/ogg": "ogg",
    "audio/mpeg": "mp3",
    "audio/mp4": "m4a",
    "audio/wav": "wav",
    "audio/x-wav": "wav",
}


def _normalize_url(raw: Optional[str]) -> str:
    raw = (raw or "").strip()
    if not raw:
        return ""
    if not raw.startswith("http://") and not raw.startswith("https://"):
        raw = "https://" + raw
    return raw.rstrip("/")


def recording_path(user_id: str, task_id: str, content_type: Optional[str] = None, now_ms: Optional[int] = None) -> str:
    """Object key under the submitting user's namespace: <user_id>/<task_id>_<epoch_ms>.<ext>"""
    ext = CONTENT_TYPE_EXTENSIONS.get((content_type or "").split(";")[0].strip().lower(), "webm")
    ts = now_ms if now_ms is not None else int(time.time() * 1000)
    return f"{user_id}/{task_id}_{ts}.{ext}"


class RecordingStorage:
    """Blob store for recordings. Upload returns (object path, public URL)."""

    def __init__(self, client: "Client" = None, bucket: Optional[str] = None):
        self._client = client
        self.bucket = bucket or settings.RECORDINGS_BUCKET

    def _sb(self) -> "Client":
        if self._client is not None:
            return self._client

        url = _normalize_url(settings.SUPABASE_URL)
        key = (settings.SUPABASE_SERVICE_ROLE_KEY or "").strip()
        if not SUPABASE_AVAILABLE or not url or not key:
            raise NotConfigured("Supabase storage not configured")

        self._client = create_client(url, key)
        return self._client

    def upload(self, *, user_id: str, task_id: str, data: bytes, content_type: Optional[str]) -> Tuple[str, str]:
        path = recording_path(user_id, task_id, content_type)
        bucket = self._sb().storage.from_(self.bucket)
        try:
            bucket.upload(
                path=path,
                file=data,
                file_options={"content-type": content_type or "audio/webm"},
            )
            url = bucket.get_public_url(path)
        except Exception as e:
            print(f"[storage] upload failed for {path}: {e!r}")
            raise StorageError("Failed to upload recording", detail=type(e).__name__) from e
        return path, str(url).rstrip("?")

    def download(self, path: str) -> bytes:
        bucket = self._sb().storage.from_(self.bucket)
        try:
            return bucket.download(path)
        except Exception as e:
            raise StorageError("Failed to download recording", detail=type(e).__name__) from e
