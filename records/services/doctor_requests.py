"""
Doctor registration requests.

A request stores its documents under the pending directory of its
temporary token.  Approval moves the documents to the approved directory of
the doctor's national id and creates the doctor account; rejection only
records the decision.
"""
from __future__ import annotations

import logging
import posixpath
import secrets
from typing import Optional

from django.contrib.auth import get_user_model
from django.db import transaction
from django.utils import timezone

from records.models import DoctorProfile, DoctorRequest
from records.services.files import validate_upload
from records.services.uploads import move_request_to_approved

logger = logging.getLogger(__name__)

User = get_user_model()

# Multipart field name -> model field
DOCUMENT_FIELDS = {
    'medicalCertificate': 'medical_certificate',
    'licenseDocument': 'license_document',
    'profilePhoto': 'profile_photo',
}


def create_doctor_request(*, first_name: str, last_name: str, email: str, national_id: str,
                          specialization: str = '', license_number: str = '',
                          documents: Optional[dict] = None) -> DoctorRequest:
    documents = {k: v for k, v in (documents or {}).items() if v is not None}
    for key, f in documents.items():
        if key not in DOCUMENT_FIELDS:
            raise ValueError(f'حقل ملف غير معروف: {key}')
        validate_upload(f)

    req = DoctorRequest(
        first_name=first_name, last_name=last_name, email=email, national_id=national_id,
        specialization=specialization, license_number=license_number,
    )
    for key, f in documents.items():
        setattr(req, DOCUMENT_FIELDS[key], f)
    req.save()
    logger.info("doctor request %s created with %d document(s)", req.request_token, len(documents))
    return req


def _ensure_pending(req: DoctorRequest) -> None:
    if req.status != DoctorRequest.STATUS_PENDING:
        raise ValueError('تمت مراجعة هذا الطلب مسبقاً')


@transaction.atomic
def approve_doctor_request(req: DoctorRequest, reviewer) -> tuple[DoctorRequest, User, str]:
    """Approve ``req``; returns the request, the new doctor user and its initial password."""
    _ensure_pending(req)
    username = f"dr{req.national_id}"
    if User.objects.filter(username=username).exists():
        raise ValueError('يوجد حساب طبيب مسجل بنفس الرقم الوطني')

    password = secrets.token_urlsafe(12)
    user = User.objects.create_user(
        username=username, password=password, email=req.email,
        first_name=req.first_name, last_name=req.last_name, role=User.ROLE_DOCTOR,
    )
    DoctorProfile.objects.create(user=user, specialization=req.specialization, license_number=req.license_number)

    # Files move last so a failed database write leaves them in pending/
    stored = [name for name in DoctorRequest.DOCUMENT_FIELDS if getattr(req, name)]
    if stored:
        try:
            approved_dir = move_request_to_approved(req.request_token, req.national_id)
        except OSError as e:
            raise ValueError('تعذر نقل مستندات الطلب') from e
        for name in stored:
            field_file = getattr(req, name)
            field_file.name = posixpath.join(approved_dir, posixpath.basename(field_file.name))

    req.status = DoctorRequest.STATUS_APPROVED
    req.reviewed_by = reviewer
    req.reviewed_at = timezone.now()
    req.save()
    logger.info("doctor request %s approved; doctor user %s", req.request_token, user.id)
    return req, user, password


def reject_doctor_request(req: DoctorRequest, reviewer, reason: str = '') -> DoctorRequest:
    _ensure_pending(req)
    req.status = DoctorRequest.STATUS_REJECTED
    req.reviewed_by = reviewer
    req.reviewed_at = timezone.now()
    req.rejection_reason = reason
    req.save(update_fields=['status', 'reviewed_by', 'reviewed_at', 'rejection_reason'])
    logger.info("doctor request %s rejected", req.request_token)
    return req
