from typing import Iterable, Optional, Sequence

from django.conf import settings
from django.contrib.auth import get_user_model
from django.db import transaction

from records.models import EcgRecord, Visit, VisitAttachment

User = get_user_model()


def validate_upload(f, allowed_types: Optional[Sequence[str]] = None) -> str:
    """Check size and MIME type of an uploaded file; return its content type."""
    allowed_types = allowed_types or settings.ALLOWED_UPLOAD_TYPES
    size_mb = (f.size or 0) / (1024 * 1024)
    if size_mb > settings.UPLOAD_MAX_MB:
        raise ValueError(f'حجم الملف كبير جداً. الحد الأقصى {settings.UPLOAD_MAX_MB} ميغابايت لكل ملف')
    ctype = getattr(f, 'content_type', '') or ''
    if ctype not in allowed_types:
        raise ValueError(f'نوع الملف غير مدعوم: {ctype or "unknown"}')
    return ctype


@transaction.atomic
def attach_visit_files(visit: Visit, files: Iterable, uploaded_by: Optional[User] = None) -> list[VisitAttachment]:
    files = list(files)
    if not files:
        raise ValueError('لم يتم رفع أي ملف')
    # Validate everything before anything is written to disk
    ctypes = [validate_upload(f) for f in files]
    return [
        VisitAttachment.objects.create(
            visit=visit, file=f, original_name=f.name, content_type=ctype,
            size=f.size or 0, uploaded_by=uploaded_by,
        )
        for f, ctype in zip(files, ctypes)
    ]


def store_ecg(patient: User, image, uploaded_by: Optional[User] = None) -> EcgRecord:
    if image is None:
        raise ValueError('لم يتم رفع صورة تخطيط القلب')
    ctype = validate_upload(image, settings.ALLOWED_ECG_TYPES)
    return EcgRecord.objects.create(
        patient=patient, image=image, content_type=ctype, size=image.size or 0, uploaded_by=uploaded_by,
    )
