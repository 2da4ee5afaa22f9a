"""
Medication views derived from a patient's visit history.

Prescriptions are embedded in completed visits.  The functions here collect
them newest visit first, attach the visit and doctor context, and decide
which ones are still active.  Public entry points return plain result
dictionaries (``{'success': True, ...}`` or ``{'success': False, 'message': ...}``)
and never raise for lookup failures.
"""
from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from datetime import datetime
from typing import Iterable, Optional

from django.conf import settings
from django.utils import timezone

from records.models import DoctorProfile, Visit
from records.services.activity import is_active
from records.services.durations import parse_duration

logger = logging.getLogger(__name__)

DOCTOR_TITLE = 'د.'
UNSPECIFIED_DOCTOR = 'غير محدد'

CURRENT_MEDICATIONS_ERROR = 'حدث خطأ أثناء جلب الأدوية الحالية'
MEDICATION_HISTORY_ERROR = 'حدث خطأ أثناء جلب تاريخ الأدوية'


@dataclass(frozen=True)
class Prescription:
    medication_name: str
    dosage: str = ''
    duration: str = ''
    frequency: str = ''
    notes: Optional[str] = None

    @classmethod
    def from_dict(cls, data: dict) -> 'Prescription':
        return cls(
            medication_name=str(data.get('medicationName') or ''),
            dosage=str(data.get('dosage') or ''),
            duration=str(data.get('duration') or ''),
            frequency=str(data.get('frequency') or ''),
            notes=data.get('notes'),
        )

    def to_dict(self) -> dict:
        return {
            'medicationName': self.medication_name,
            'dosage': self.dosage,
            'frequency': self.frequency,
            'duration': self.duration,
            'notes': self.notes,
        }


@dataclass
class MedicationRecord:
    """A prescription with the context of the visit it was written in."""
    prescription: Prescription
    visit_id: int
    visit_date: datetime
    doctor_name: str
    doctor_specialization: Optional[str] = None
    is_active: Optional[bool] = None

    @property
    def medication_name(self) -> str:
        return self.prescription.medication_name

    def to_dict(self) -> dict:
        return {
            **self.prescription.to_dict(),
            'visitId': self.visit_id,
            'visitDate': self.visit_date.isoformat(),
            'doctorName': self.doctor_name,
            'doctorSpecialization': self.doctor_specialization,
            'isActive': self.is_active,
        }


def doctor_display_name(doctor: Optional[DoctorProfile]) -> str:
    if doctor is None:
        return UNSPECIFIED_DOCTOR
    user = doctor.user
    return ' '.join(part for part in (DOCTOR_TITLE, user.first_name, user.last_name) if part)


def completed_visits(patient_id):
    """Completed visits of a patient that carry prescriptions, newest first."""
    return (
        Visit.objects
        .filter(patient_id=patient_id, status=Visit.STATUS_COMPLETED, medication_count__gt=0)
        .select_related('doctor__user')
        .order_by('-visit_date', '-id')
    )


def collect_medications(visits: Iterable[Visit]) -> list[MedicationRecord]:
    records: list[MedicationRecord] = []
    for visit in visits:
        doctor = visit.doctor
        doctor_name = doctor_display_name(doctor)
        specialization = doctor.specialization if doctor is not None else None
        for entry in visit.prescribed_medications or []:
            if not isinstance(entry, dict):
                logger.warning("skipping malformed prescription in visit %s", visit.id)
                continue
            records.append(MedicationRecord(
                prescription=Prescription.from_dict(entry),
                visit_id=visit.id,
                visit_date=visit.visit_date,
                doctor_name=doctor_name,
                doctor_specialization=specialization,
            ))
    return records


def stamp_activity(records: list[MedicationRecord], now: datetime, fallback_window_days: float) -> list[MedicationRecord]:
    for record in records:
        spec = parse_duration(record.prescription.duration)
        record.is_active = is_active(spec, record.visit_date, now, fallback_window_days)
    return records


def active_medications(patient_id, now: Optional[datetime] = None,
                       fallback_window_days: Optional[float] = None) -> list[MedicationRecord]:
    """Active prescriptions of a patient.  Lookup errors propagate."""
    now = now or timezone.now()
    if fallback_window_days is None:
        fallback_window_days = settings.MEDICATION_CURRENT_FALLBACK_DAYS
    records = stamp_activity(collect_medications(completed_visits(patient_id)), now, fallback_window_days)
    active = [r for r in records if r.is_active]
    logger.debug("patient %s: %d prescriptions, %d active", patient_id, len(records), len(active))
    return active


def get_current_medications(patient_id, now: Optional[datetime] = None,
                            fallback_window_days: Optional[float] = None) -> dict:
    try:
        active = active_medications(patient_id, now=now, fallback_window_days=fallback_window_days)
    except Exception:
        logger.exception("failed to load current medications for patient %s", patient_id)
        return {'success': False, 'message': CURRENT_MEDICATIONS_ERROR}
    return {
        'success': True,
        'medications': [r.to_dict() for r in active],
        'count': len(active),
    }


def get_medication_history(patient_id, filters: Optional[dict] = None, now: Optional[datetime] = None,
                           fallback_window_days: Optional[float] = None) -> dict:
    """All prescriptions of a patient, page by page.

    ``filters`` accepts ``startDate``/``endDate`` (inclusive, compared with
    the local calendar date of the visit), ``medicationName`` (case
    insensitive substring), ``page`` (1-indexed) and ``limit``.  Pages are
    taken over visits, so ``pagination.total`` counts visits.
    """
    filters = filters or {}
    now = now or timezone.now()
    if fallback_window_days is None:
        fallback_window_days = settings.MEDICATION_HISTORY_FALLBACK_DAYS

    try:
        page = max(1, int(filters.get('page') or 1))
        limit = max(1, int(filters.get('limit') or settings.MEDICATION_HISTORY_PAGE_SIZE))
        name_filter = (filters.get('medicationName') or '').strip().casefold()

        qs = completed_visits(patient_id)
        if filters.get('startDate'):
            qs = qs.filter(visit_date__date__gte=filters['startDate'])
        if filters.get('endDate'):
            qs = qs.filter(visit_date__date__lte=filters['endDate'])

        total = qs.count()
        start = (page - 1) * limit
        records = collect_medications(qs[start:start + limit])
        if name_filter:
            records = [r for r in records if name_filter in r.medication_name.casefold()]
        stamp_activity(records, now, fallback_window_days)
    except Exception:
        logger.exception("failed to load medication history for patient %s", patient_id)
        return {'success': False, 'message': MEDICATION_HISTORY_ERROR}

    unique_names = {r.medication_name.strip().casefold() for r in records}
    return {
        'success': True,
        'history': [r.to_dict() for r in records],
        'statistics': {
            'totalPrescriptions': len(records),
            'uniqueMedications': len(unique_names),
            'activeMedications': sum(1 for r in records if r.is_active),
        },
        'pagination': {
            'total': total,
            'page': page,
            'limit': limit,
            'pages': math.ceil(total / limit),
        },
    }
