"""
Proof of Delivery Storage for MediSpatch

Photos live under the proof-of-delivery bucket of the default storage
backend (a directory for FileSystemStorage, a key prefix for object
stores).
"""

import logging
import os
import time
import uuid
from typing import Optional

from django.conf import settings
from django.core.files.storage import default_storage

logger = logging.getLogger(__name__)

DEFAULT_EXTENSION = 'jpg'


def _bucket() -> str:
    return settings.PROOF_OF_DELIVERY_BUCKET.strip('/')


def validate_photo(file) -> None:
    """
    Raises:
        ValueError: If the file is not an image or exceeds the size limit
    """
    content_type = getattr(file, 'content_type', '') or ''
    if not content_type.startswith('image/'):
        raise ValueError("Please select an image file")

    max_bytes = settings.PROOF_PHOTO_MAX_BYTES
    if file.size > max_bytes:
        raise ValueError(f"Image must be smaller than {max_bytes // (1024 * 1024)}MB")


def generate_file_name(delivery_id, original_name: str, now_ms: Optional[int] = None) -> str:
    """pod_<delivery id>_<epoch ms>.<ext>"""
    if now_ms is None:
        now_ms = int(time.time() * 1000)
    _, ext = os.path.splitext(original_name or '')
    ext = ext.lstrip('.').lower() or DEFAULT_EXTENSION
    return f"pod_{delivery_id}_{now_ms}.{ext}"


def ensure_bucket(storage=None) -> bool:
    """
    Make sure the bucket exists. Failures are logged, never raised.
    """
    storage = storage or default_storage
    try:
        path = storage.path(_bucket())
    except NotImplementedError:
        # Remote stores create prefixes on first write
        return True

    try:
        os.makedirs(path, exist_ok=True)
        return True
    except OSError as e:
        logger.warning(f"[PROOF] Could not create bucket {_bucket()}: {e}")
        return False


def get_public_url(path: str, storage=None) -> str:
    storage = storage or default_storage
    url = storage.url(path)
    if url.startswith('http://') or url.startswith('https://'):
        return url
    return f"{settings.BASE_URL.rstrip('/')}/{url.lstrip('/')}"


def photo_exists(path: str, storage=None) -> bool:
    storage = storage or default_storage
    try:
        return storage.exists(path)
    except Exception as e:
        logger.warning(f"[PROOF] Existence check failed for {path}: {e}")
        return False


def upload_photo(delivery, file, storage=None) -> str:
    """
    Validate and store a proof photo, returning its public URL.

    Raises:
        ValueError: If the photo fails validation
    """
    validate_photo(file)
    storage = storage or default_storage
    ensure_bucket(storage)

    delivery_id = delivery.pk if delivery is not None else uuid.uuid4()
    name = f"{_bucket()}/{generate_file_name(delivery_id, getattr(file, 'name', ''))}"
    saved_path = storage.save(name, file)

    logger.info(f"[PROOF] Stored {saved_path}")
    return get_public_url(saved_path, storage)
