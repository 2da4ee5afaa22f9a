"""
Database models for the Patient360 backend.

These models capture the concepts the medication and file services read
from: users with a role, patient and doctor profiles, visits carrying an
embedded prescription list, and the uploaded medical files (visit
attachments, ECG images and doctor-registration documents).  Where
possible field names mirror the JSON keys exposed to the front-end.
"""
from __future__ import annotations

from django.contrib.auth.models import AbstractUser
from django.db import models

from records.services.uploads import (
    ecg_upload,
    license_document_upload,
    medical_certificate_upload,
    new_request_token,
    profile_photo_upload,
    visit_attachment_upload,
)


class User(AbstractUser):
    """Custom user model with a role.

    Roles mirror the front-end roles: 'patient', 'doctor' and 'admin'.
    Role specific data lives in :class:`PatientProfile` and
    :class:`DoctorProfile`.
    """
    ROLE_PATIENT = 'patient'
    ROLE_DOCTOR = 'doctor'
    ROLE_ADMIN = 'admin'
    ROLE_CHOICES = [
        (ROLE_PATIENT, 'Patient'),
        (ROLE_DOCTOR, 'Doctor'),
        (ROLE_ADMIN, 'Administrator'),
    ]
    role = models.CharField(max_length=10, choices=ROLE_CHOICES, default=ROLE_PATIENT)

    def __str__(self) -> str:
        return f"{self.username} ({self.role})"


class PatientProfile(models.Model):
    """Patient specific information separate from the User model.

    ``national_id`` (or a child id for minors) is the owner identifier used
    when organizing the patient's uploaded files on disk.
    """
    user = models.OneToOneField(User, on_delete=models.CASCADE, related_name='patient_profile')
    national_id = models.CharField(max_length=20, unique=True)
    sex = models.CharField(max_length=10, blank=True)
    date_of_birth = models.DateField(null=True, blank=True)
    phone = models.CharField(max_length=20, blank=True)

    def __str__(self) -> str:
        return f"{self.user.username} ({self.national_id})"


class DoctorProfile(models.Model):
    """A doctor account.  The display name comes from the linked user."""
    user = models.OneToOneField(User, on_delete=models.CASCADE, related_name='doctor_profile')
    specialization = models.CharField(max_length=100, blank=True)
    license_number = models.CharField(max_length=50, blank=True)

    def __str__(self) -> str:
        return f"{self.user.username} ({self.specialization})"


class Visit(models.Model):
    """A clinical encounter between a patient and a doctor.

    Prescriptions are embedded as an ordered JSON list of objects with the
    keys ``medicationName``, ``dosage``, ``frequency``, ``duration`` and
    ``notes``.  Once a visit is completed the list is treated as read-only.
    """
    STATUS_DRAFT = 'draft'
    STATUS_IN_PROGRESS = 'in_progress'
    STATUS_COMPLETED = 'completed'
    STATUS_CANCELLED = 'cancelled'
    STATUS_CHOICES = (
        (STATUS_DRAFT, 'draft'),
        (STATUS_IN_PROGRESS, 'in_progress'),
        (STATUS_COMPLETED, 'completed'),
        (STATUS_CANCELLED, 'cancelled'),
    )

    patient = models.ForeignKey(User, on_delete=models.CASCADE, related_name='visits')
    # Doctor accounts may be removed; the visit history stays.
    doctor = models.ForeignKey(
        DoctorProfile, null=True, blank=True, on_delete=models.SET_NULL, related_name='visits'
    )
    visit_date = models.DateTimeField()
    status = models.CharField(max_length=16, choices=STATUS_CHOICES, default=STATUS_DRAFT, db_index=True)
    chief_complaint = models.TextField(blank=True)
    diagnosis = models.TextField(blank=True)
    prescribed_medications = models.JSONField(default=list, blank=True)
    # Kept in sync with prescribed_medications on save
    medication_count = models.PositiveIntegerField(default=0)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        indexes = [
            models.Index(fields=['patient', 'status', 'visit_date'], name='records_vis_patient_5c1f0e_idx'),
        ]

    def save(self, *args, **kwargs):
        self.medication_count = len(self.prescribed_medications or [])
        update_fields = kwargs.get('update_fields')
        if update_fields is not None and 'prescribed_medications' in update_fields:
            kwargs['update_fields'] = {*update_fields, 'medication_count'}
        super().save(*args, **kwargs)

    def __str__(self) -> str:
        return f"visit {self.id} p={self.patient_id} {self.status}"


class VisitAttachment(models.Model):
    visit = models.ForeignKey(Visit, on_delete=models.CASCADE, related_name='attachments')
    file = models.FileField(upload_to=visit_attachment_upload, max_length=512)
    original_name = models.CharField(max_length=255, blank=True)
    content_type = models.CharField(max_length=128, blank=True, null=True)
    size = models.PositiveIntegerField(default=0)
    uploaded_by = models.ForeignKey(User, null=True, blank=True, on_delete=models.SET_NULL)
    uploaded_at = models.DateTimeField(auto_now_add=True)

    def __str__(self) -> str:
        return f"att {self.id} visit={self.visit_id}"


class EcgRecord(models.Model):
    """An uploaded ECG image.  Analysis happens in an external service."""
    patient = models.ForeignKey(User, on_delete=models.CASCADE, related_name='ecg_records')
    image = models.FileField(upload_to=ecg_upload, max_length=512)
    content_type = models.CharField(max_length=128, blank=True, null=True)
    size = models.PositiveIntegerField(default=0)
    uploaded_by = models.ForeignKey(
        User, null=True, blank=True, on_delete=models.SET_NULL, related_name='uploaded_ecgs'
    )
    analysis = models.JSONField(default=dict, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)

    def __str__(self) -> str:
        return f"ecg {self.id} p={self.patient_id}"


class DoctorRequest(models.Model):
    """A doctor registration request awaiting administrator review.

    Documents are stored under ``uploads/doctor-requests/pending/request_<token>``
    until the request is approved, then moved to the approved directory of
    the doctor's national id.
    """
    STATUS_PENDING = 'pending'
    STATUS_APPROVED = 'approved'
    STATUS_REJECTED = 'rejected'
    STATUS_CHOICES = (
        (STATUS_PENDING, 'pending'),
        (STATUS_APPROVED, 'approved'),
        (STATUS_REJECTED, 'rejected'),
    )
    DOCUMENT_FIELDS = ('medical_certificate', 'license_document', 'profile_photo')

    request_token = models.CharField(max_length=64, unique=True, default=new_request_token)
    first_name = models.CharField(max_length=150)
    last_name = models.CharField(max_length=150)
    email = models.EmailField()
    national_id = models.CharField(max_length=20)
    specialization = models.CharField(max_length=100, blank=True)
    license_number = models.CharField(max_length=50, blank=True)

    medical_certificate = models.FileField(upload_to=medical_certificate_upload, max_length=512, blank=True)
    license_document = models.FileField(upload_to=license_document_upload, max_length=512, blank=True)
    profile_photo = models.FileField(upload_to=profile_photo_upload, max_length=512, blank=True)

    status = models.CharField(max_length=16, choices=STATUS_CHOICES, default=STATUS_PENDING, db_index=True)
    reviewed_by = models.ForeignKey(
        User, null=True, blank=True, on_delete=models.SET_NULL, related_name='reviewed_doctor_requests'
    )
    reviewed_at = models.DateTimeField(null=True, blank=True)
    rejection_reason = models.CharField(max_length=255, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)

    def __str__(self) -> str:
        return f"doctor request {self.request_token} ({self.status})"


class AuditEvent(models.Model):
    user = models.ForeignKey(User, on_delete=models.SET_NULL, null=True, blank=True)
    action = models.CharField(max_length=64)
    object_type = models.CharField(max_length=64, blank=True, null=True)
    object_id = models.IntegerField(blank=True, null=True)
    detail = models.JSONField(default=dict, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        indexes = [
            models.Index(fields=['action', 'created_at'], name='records_aud_action_8e2b1c_idx'),
            models.Index(fields=['object_type', 'object_id', 'created_at'], name='records_aud_object__4d7a9f_idx'),
        ]
