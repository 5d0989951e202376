"""
Helpers for uploaded photos (product captures, pickup proofs, bills).
"""

import os
import uuid

from django.conf import settings
from django.core.files.base import ContentFile
from django.core.files.storage import default_storage


def save_upload(upload, folder):
    """Store an uploaded file under ``folder`` and return its public URL."""
    _, ext = os.path.splitext(getattr(upload, 'name', '') or '')
    name = f"{folder}/{uuid.uuid4().hex}{ext.lower() or '.jpg'}"
    if hasattr(upload, 'seek'):
        upload.seek(0)
    stored = default_storage.save(name, upload)
    return default_storage.url(stored)


def save_bytes(data, folder, ext='.jpg'):
    """Store raw bytes (e.g. a downloaded product image) and return the URL."""
    stored = default_storage.save(f"{folder}/{uuid.uuid4().hex}{ext}", ContentFile(data))
    return default_storage.url(stored)


def discard(url):
    """Delete a file saved by the helpers above. URLs outside MEDIA_URL are ignored."""
    media_url = settings.MEDIA_URL
    if not url or not url.startswith(media_url):
        return
    name = url[len(media_url):]
    if default_storage.exists(name):
        default_storage.delete(name)
