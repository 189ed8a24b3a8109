"""
Image uploads for the profile photo and art pieces.

Files land in ``<UPLOAD_DIR>/<category>/`` under a generated name and are
served back by the static mount at ``/uploads``. Records only store the
returned URL, so ``sweep_orphans`` reconciles the two trees on request.
"""

import logging
import os
import random
import time
from pathlib import Path
from typing import Dict, Optional, Set
from urllib.parse import urlparse

from dotenv import load_dotenv
from fastapi import HTTPException, Request, UploadFile

import database

load_dotenv()

logger = logging.getLogger(__name__)

UPLOAD_DIR = Path(os.getenv("UPLOAD_DIR", "uploads")).resolve()
PUBLIC_BASE_URL = os.getenv("PUBLIC_BASE_URL", "").rstrip("/")
ORPHAN_GRACE_SECONDS = int(os.getenv("ORPHAN_GRACE_SECONDS", 3600))

ALLOWED_IMAGE_TYPES = {"image/jpeg", "image/png", "image/gif", "image/webp"}
MAX_UPLOAD_BYTES = 10 * 1024 * 1024

# category -> (collection, field holding the url)
CATEGORIES: Dict[str, tuple] = {
    "profile": ("intro", "profileImage"),
    "art": ("art", "image"),
}


def ensure_upload_dirs():
    for category in CATEGORIES:
        (UPLOAD_DIR / category).mkdir(parents=True, exist_ok=True)


def make_filename(original: Optional[str]) -> str:
    ext = os.path.splitext(original or "")[1]
    return f"{int(time.time() * 1000)}-{random.randint(0, 10**9)}{ext}"


def public_url(request: Request, category: str, filename: str) -> str:
    base = PUBLIC_BASE_URL or f"{request.url.scheme}://{request.headers.get('host', request.url.netloc)}"
    return f"{base}/uploads/{category}/{filename}"


def save_upload(request: Request, category: str, file: Optional[UploadFile]) -> Dict[str, str]:
    """Validate and store one uploaded image, returning its url and filename.

    Type and size are both checked before anything touches the disk.
    """
    if file is None or not file.filename:
        raise HTTPException(status_code=400, detail="No file uploaded")
    if file.content_type not in ALLOWED_IMAGE_TYPES:
        logger.info("Rejected %s upload with content type %r", category, file.content_type)
        raise HTTPException(status_code=400, detail="Only image files are allowed")

    content = file.file.read(MAX_UPLOAD_BYTES + 1)
    if len(content) > MAX_UPLOAD_BYTES:
        logger.info("Rejected oversized %s upload %r", category, file.filename)
        raise HTTPException(status_code=413, detail="File too large (max 10 MB)")

    filename = make_filename(file.filename)
    target = UPLOAD_DIR / category / filename
    target.parent.mkdir(parents=True, exist_ok=True)
    target.write_bytes(content)
    logger.info("Stored %s upload %s (%d bytes)", category, filename, len(content))
    return {"url": public_url(request, category, filename), "filename": filename}


def _referenced_names(category: str) -> Set[str]:
    collection, field = CATEGORIES[category]
    prefix = f"/uploads/{category}/"
    names = set()
    for doc in database.get_documents(collection):
        url = doc.get(field)
        if not url:
            continue
        # PUBLIC_BASE_URL may carry its own path, so match the tail only
        _, sep, name = urlparse(url).path.rpartition(prefix)
        if sep and name:
            names.add(name)
    return names


def sweep_orphans(grace_seconds: Optional[int] = None) -> Dict[str, int]:
    """Delete uploaded files that no record references any more.

    Files younger than the grace period are kept: they may belong to an
    upload whose record has not been saved yet.
    """
    grace = ORPHAN_GRACE_SECONDS if grace_seconds is None else grace_seconds
    cutoff = time.time() - grace
    deleted = kept = 0
    for category in CATEGORIES:
        folder = UPLOAD_DIR / category
        if not folder.is_dir():
            continue
        referenced = _referenced_names(category)
        for path in folder.iterdir():
            if not path.is_file():
                continue
            if path.name in referenced or path.stat().st_mtime > cutoff:
                kept += 1
                continue
            path.unlink()
            deleted += 1
            logger.info("Removed orphaned upload %s/%s", category, path.name)
    logger.info("Upload sweep finished: %d deleted, %d kept", deleted, kept)
    return {"deleted": deleted, "kept": kept}
