from datetime import datetime, timedelta, timezone as dt_timezone

import pytest
from django.core.cache import cache

from records.models import DoctorProfile, PatientProfile, User, Visit

NOW = datetime(2024, 6, 1, 12, 0, tzinfo=dt_timezone.utc)


@pytest.fixture(autouse=True)
def _clear_cache():
    # Throttle counters live in the default cache
    cache.clear()
    yield
    cache.clear()


@pytest.fixture(autouse=True)
def _media_root(settings, tmp_path):
    settings.MEDIA_ROOT = tmp_path / 'media'
    return settings.MEDIA_ROOT


@pytest.fixture
def patient(db):
    user = User.objects.create_user(username='p1', password='P@ssw0rd1', role=User.ROLE_PATIENT,
                                    first_name='Lina', last_name='Khaled')
    PatientProfile.objects.create(user=user, national_id='12345678901')
    return user


@pytest.fixture
def doctor(db):
    user = User.objects.create_user(username='d1', password='P@ssw0rd1', role=User.ROLE_DOCTOR,
                                    first_name='Sami', last_name='Haddad')
    return DoctorProfile.objects.create(user=user, specialization='Cardiology')


@pytest.fixture
def make_visit(db):
    def _make(patient, days_ago, medications, doctor=None, status=Visit.STATUS_COMPLETED):
        return Visit.objects.create(
            patient=patient,
            doctor=doctor,
            visit_date=NOW - timedelta(days=days_ago),
            status=status,
            prescribed_medications=[
                {'medicationName': name, 'dosage': '1 tab', 'frequency': 'daily', 'duration': duration}
                for name, duration in medications
            ],
        )
    return _make
