import base64
import logging
from dataclasses import dataclass
from datetime import timedelta

import httpx
from fastapi import HTTPException
from fastapi.concurrency import run_in_threadpool
from firebase_admin import storage
from google.api_core.exceptions import GoogleAPIError
from google.auth.exceptions import GoogleAuthError

from syllabot.core.config import settings
from syllabot.db.firestore import init_firebase

logger = logging.getLogger("syllabot.storage")
logger.setLevel(logging.INFO)


@dataclass
class SyllabusFile:
    data: str  # base64
    mime_type: str = "application/pdf"


def _split_uri(uri: str) -> tuple[str | None, str]:
    """'gs://bucket/path/file.pdf' -> ('bucket', 'path/file.pdf'); bare paths use the default bucket."""
    if uri.startswith("gs://"):
        bucket, _, path = uri[len("gs://"):].partition("/")
        return bucket, path
    return None, uri.lstrip("/")


def get_download_url(uri: str) -> str:
    """Resolve a stored file to a time-limited download URL."""
    if uri.startswith(("http://", "https://")):
        return uri
    init_firebase()
    bucket_name, path = _split_uri(uri)
    blob = storage.bucket(bucket_name).blob(path)
    return blob.generate_signed_url(expiration=timedelta(minutes=settings.SIGNED_URL_MINUTES), version="v4")


async def read_as_base64(url: str) -> tuple[str, str]:
    async with httpx.AsyncClient(timeout=30, follow_redirects=True) as client:
        resp = await client.get(url)
        resp.raise_for_status()
    mime = resp.headers.get("content-type", "application/pdf").split(";")[0].strip() or "application/pdf"
    return base64.b64encode(resp.content).decode("ascii"), mime


async def fetch_syllabus(uri: str) -> SyllabusFile:
    if not uri:
        raise HTTPException(status_code=404, detail="This course has no syllabus yet")
    try:
        url = await run_in_threadpool(get_download_url, uri)
        data, mime = await read_as_base64(url)
    except (httpx.HTTPError, ValueError, GoogleAuthError, GoogleAPIError) as e:
        logger.warning("syllabus fetch failed for %s: %s", uri, e)
        raise HTTPException(status_code=502, detail="Could not load the syllabus")
    # Storage often serves PDFs as octet-stream
    if mime == "application/octet-stream" or not mime.startswith("application/"):
        mime = "application/pdf"
    return SyllabusFile(data=data, mime_type=mime)
