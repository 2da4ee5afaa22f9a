"""
Organized storage paths for uploaded medical files.

Files are grouped by category, year, month and owner::

    uploads/visits/2024/01/patient_12345678901/visit_2024-01-20T10-30-45-123Z_abc12345.jpg

Doctor registration documents live under a per-request directory until the
request is approved, then move to a per-doctor directory::

    uploads/doctor-requests/pending/request_<requestId>/<fieldName>_<epochMillis>.pdf
    uploads/doctor-requests/approved/doctor_<nationalId>/<fieldName>_<epochMillis>.pdf

Path computation is pure; callers pass ``now`` and ``random_source`` to get
deterministic output.  Directory creation and moves are separate helpers.
"""
from __future__ import annotations

import logging
import os
import re
import secrets
import shutil
import string
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone as dt_timezone
from typing import Callable, Optional

from django.conf import settings
from django.core.exceptions import ObjectDoesNotExist
from django.utils import timezone
from django.utils.deconstruct import deconstructible

logger = logging.getLogger(__name__)

UPLOAD_ROOT = 'uploads'
TOKEN_ALPHABET = string.digits + string.ascii_lowercase
TOKEN_LENGTH = 8

# Every category is filed under the patient it belongs to
OWNER_PREFIX = 'patient'

DOCTOR_REQUESTS_DIR = 'doctor-requests'


@dataclass(frozen=True)
class FilePathDescriptor:
    full_path: str
    relative_path: str
    filename: str
    directory: str

    def to_dict(self) -> dict:
        return {
            'fullPath': self.full_path,
            'relativePath': self.relative_path,
            'filename': self.filename,
            'directory': self.directory,
        }


def random_token(length: int = TOKEN_LENGTH) -> str:
    return ''.join(secrets.choice(TOKEN_ALPHABET) for _ in range(length))


def _aware(now: Optional[datetime]) -> datetime:
    if now is None:
        return timezone.now()
    if timezone.is_naive(now):
        return timezone.make_aware(now)
    return now


def _timestamp_slug(now: datetime) -> str:
    """UTC ISO timestamp with ':' and '.' turned into '-' (``2024-01-20T10-30-45-123Z``)."""
    stamp = now.astimezone(dt_timezone.utc).isoformat(timespec='milliseconds').replace('+00:00', 'Z')
    return re.sub(r'[:.]', '-', stamp)


EPOCH = datetime(1970, 1, 1, tzinfo=dt_timezone.utc)


def _epoch_millis(now: datetime) -> int:
    return (now - EPOCH) // timedelta(milliseconds=1)


def _describe(directory: str, filename: str) -> FilePathDescriptor:
    full_path = os.path.join(directory, filename)
    return FilePathDescriptor(
        full_path=full_path,
        relative_path=full_path.replace('\\', '/'),
        filename=filename,
        directory=directory,
    )


def compute_file_path(category: str, owner_id: str, original_filename: str,
                      now: Optional[datetime] = None,
                      random_source: Optional[Callable[[], str]] = None) -> FilePathDescriptor:
    """Build the storage location for an uploaded artifact.

    ``category`` is the singular upload type ('visit', 'ecg', ...).  The
    year/month directories follow the local time of ``now`` while the
    filename timestamp is UTC.  The original extension is kept verbatim and
    a filename without an extension simply gets none.
    """
    now = _aware(now)
    random_source = random_source or random_token
    local = timezone.localtime(now)

    ext = os.path.splitext(original_filename or '')[1]
    filename = f"{category}_{_timestamp_slug(now)}_{random_source()}{ext}"

    directory = os.path.join(
        UPLOAD_ROOT,
        f"{category}s",
        str(local.year),
        f"{local.month:02d}",
        f"{OWNER_PREFIX}_{owner_id}",
    )
    return _describe(directory, filename)


def pending_request_directory(request_id: str) -> str:
    return os.path.join(UPLOAD_ROOT, DOCTOR_REQUESTS_DIR, 'pending', f"request_{request_id}")


def approved_request_directory(national_id: str) -> str:
    return os.path.join(UPLOAD_ROOT, DOCTOR_REQUESTS_DIR, 'approved', f"doctor_{national_id}")


def compute_request_file_path(request_id: str, field_name: str, original_filename: str,
                              now: Optional[datetime] = None) -> FilePathDescriptor:
    """Storage location for a pending doctor-request document.

    There is no random part: ``request_id`` must already be unique.
    """
    now = _aware(now)
    ext = os.path.splitext(original_filename or '')[1]
    filename = f"{field_name}_{_epoch_millis(now)}{ext}"
    return _describe(pending_request_directory(request_id), filename)


def new_request_token(now: Optional[datetime] = None,
                      random_source: Optional[Callable[[], str]] = None) -> str:
    now = _aware(now)
    random_source = random_source or random_token
    return f"temp_{_epoch_millis(now)}_{random_source()}"


# ---------------------------------------------------------------------------
# Filesystem helpers
# ---------------------------------------------------------------------------

def _media_root(root) -> str:
    return str(root if root is not None else settings.MEDIA_ROOT)


def ensure_directory(directory: str, root=None) -> str:
    """Create ``directory`` (relative to MEDIA_ROOT) if missing; return its absolute path."""
    path = os.path.join(_media_root(root), directory)
    if not os.path.isdir(path):
        os.makedirs(path, exist_ok=True)
        logger.info("created upload directory %s", directory)
    return path


def move_request_to_approved(request_id: str, national_id: str, root=None) -> str:
    """Move a request's pending documents into the doctor's approved directory.

    Returns the approved directory relative to MEDIA_ROOT with forward
    slashes.  On a filesystem error the documents already moved are put
    back in the pending directory and the error is logged and re-raised.
    """
    base = _media_root(root)
    pending_dir = os.path.join(base, pending_request_directory(request_id))
    approved_rel = approved_request_directory(national_id)
    moved: list[str] = []
    try:
        names = sorted(os.listdir(pending_dir))
        approved_dir = ensure_directory(approved_rel, root=base)
        for name in names:
            shutil.move(os.path.join(pending_dir, name), os.path.join(approved_dir, name))
            moved.append(name)
            logger.info("moved %s to %s", name, approved_rel)
        os.rmdir(pending_dir)
        logger.info("removed pending directory for request %s", request_id)
    except OSError:
        logger.exception("failed to move documents of doctor request %s", request_id)
        _restore(moved, os.path.join(base, approved_rel), pending_dir)
        raise
    return approved_rel.replace('\\', '/')


def _restore(names: list[str], approved_dir: str, pending_dir: str) -> None:
    """Put already moved documents back so the request still matches the disk."""
    for name in names:
        try:
            shutil.move(os.path.join(approved_dir, name), os.path.join(pending_dir, name))
        except OSError:
            logger.exception("could not restore %s to %s", name, pending_dir)


# ---------------------------------------------------------------------------
# FileField upload_to callables
# ---------------------------------------------------------------------------

def patient_owner_id(user) -> str:
    """National id of a patient user, falling back to the user id."""
    try:
        return user.patient_profile.national_id or str(user.pk)
    except ObjectDoesNotExist:
        return str(user.pk)


def visit_attachment_upload(instance, filename: str) -> str:
    owner = patient_owner_id(instance.visit.patient)
    return compute_file_path('visit', owner, filename).relative_path


def ecg_upload(instance, filename: str) -> str:
    owner = patient_owner_id(instance.patient)
    return compute_file_path('ecg', owner, filename).relative_path


@deconstructible
class RequestDocumentPath:
    """``upload_to`` for a doctor-request document field (``medicalCertificate`` ...)."""

    def __init__(self, field_name: str):
        self.field_name = field_name

    def __call__(self, instance, filename: str) -> str:
        return compute_request_file_path(instance.request_token, self.field_name, filename).relative_path

    def __eq__(self, other) -> bool:
        return isinstance(other, RequestDocumentPath) and other.field_name == self.field_name


medical_certificate_upload = RequestDocumentPath('medicalCertificate')
license_document_upload = RequestDocumentPath('licenseDocument')
profile_photo_upload = RequestDocumentPath('profilePhoto')
