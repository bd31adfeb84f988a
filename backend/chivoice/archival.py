# chivoice/archival.py
# Fire-and-forget copy of a recording to the S5 portal (Sia-backed, content addressed).
# Failures are logged only; the recording submission has already succeeded.

from __future__ import annotations

import asyncio
from typing import Any, Dict, Optional

import httpx

from .settings import settings


def _portal_url(raw: Optional[str]) -> str:
    url = (raw or "").strip().rstrip("/")
    if url and not url.lower().startswith(("http://", "https://")):
        url = "https://" + url
    return url


def _extract_cid(payload: Dict[str, Any]) -> Optional[str]:
    for key in ("cid", "hash", "CID"):
        val = payload.get(key)
        if isinstance(val, str) and val.strip():
            return val.strip()
    return None


async def archive_recording(
    *,
    repo,
    storage,
    recording_id: str,
    file_path: str,
    portal_url: Optional[str] = None,
    transport: Optional[httpx.AsyncBaseTransport] = None,
) -> Optional[str]:
    """
    Download the stored audio, upload it to `<portal>/s5/upload` and record the
    returned CID on the recording. Returns the CID, or None on any failure.
    """
    portal = _portal_url(portal_url if portal_url is not None else settings.S5_PORTAL_URL)
    if not portal:
        print(f"[archive] S5_PORTAL_URL not configured, skipping {recording_id}")
        return None

    try:
        data = await asyncio.to_thread(storage.download, file_path)
        filename = file_path.split("/")[-1] or "recording.webm"

        async with httpx.AsyncClient(timeout=settings.ARCHIVE_TIMEOUT_SECONDS, transport=transport) as client:
            r = await client.post(f"{portal}/s5/upload", files={"file": (filename, data)})

        if r.status_code < 200 or r.status_code >= 300:
            print(f"[archive] S5 upload failed [{r.status_code}] for {recording_id}: {r.text[:200]}")
            return None

        cid = _extract_cid(r.json() or {})
        if not cid:
            print(f"[archive] S5 response missing CID for {recording_id}")
            return None

        await asyncio.to_thread(repo.mark_recording_archived, recording_id, cid)
        print(f"[archive] Recording {recording_id} archived with CID {cid}")
        return cid
    except Exception as e:
        # TODO: retry queue for failed archival (currently dropped after logging)
        print(f"[archive] Archival of {recording_id} failed: {e!r}")
        return None
