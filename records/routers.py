"""
URL mappings for the Patient360 API.

Trailing slashes are deliberately omitted to match the front-end client.
"""
from django.urls import path, include

from .auth_views import login_view
from .views import health
from .views.doctor_requests import approve_request, reject_request, submit_doctor_request
from .views.medications import current_medications, medication_history, medication_interactions
from .views.uploads import ecg_upload, visit_attachments


urlpatterns = [
    path('', include('django_prometheus.urls')),
    path('healthz', health.healthz, name='healthz'),
    # Authentication
    path('api/auth/login', login_view, name='login_view'),
    # Medications
    path('api/patients/<int:patient_id>/medications/current', current_medications, name='current_medications'),
    path('api/patients/<int:patient_id>/medications/history', medication_history, name='medication_history'),
    path('api/patients/<int:patient_id>/medications/interactions', medication_interactions,
         name='medication_interactions'),
    # Uploads
    path('api/visits/<int:visit_id>/attachments', visit_attachments, name='visit_attachments'),
    path('api/ecg/upload', ecg_upload, name='ecg_upload'),
    # Doctor registration
    path('api/doctor-requests', submit_doctor_request, name='submit_doctor_request'),
    path('api/admin/doctor-requests/<int:pk>/approve', approve_request, name='approve_doctor_request'),
    path('api/admin/doctor-requests/<int:pk>/reject', reject_request, name='reject_doctor_request'),
]
