"""
Medication endpoints for a patient.

* ``GET /api/patients/<id>/medications/current``: prescriptions still in
  effect, newest visit first.
* ``GET /api/patients/<id>/medications/history``: every prescription with
  an ``isActive`` flag, statistics and pagination.  Query parameters:
  ``startDate``, ``endDate``, ``medicationName``, ``page``, ``limit``.
* ``GET /api/patients/<id>/medications/interactions``: duplicate and
  polypharmacy warnings over the active set.

Patients may only read their own medications; doctors and admins may read
any patient's.  The service layer reports failures as
``{'success': False, 'message': ...}`` which is returned with status 500.
"""
from __future__ import annotations

from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.exceptions import PermissionDenied
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from records.permissions import can_view_patient
from records.serializers.medications import MedicationHistoryQuerySerializer
from records.services.interactions import check_medication_interactions
from records.services.medications import get_current_medications, get_medication_history


def _ensure_access(request, patient_id: int) -> None:
    if not can_view_patient(request.user, patient_id):
        raise PermissionDenied('لا يمكنك الاطلاع على أدوية هذا المريض')


def _respond(result: dict) -> Response:
    code = status.HTTP_200_OK if result.get('success') else status.HTTP_500_INTERNAL_SERVER_ERROR
    return Response(result, status=code)


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def current_medications(request, patient_id: int):
    _ensure_access(request, patient_id)
    return _respond(get_current_medications(patient_id))


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def medication_history(request, patient_id: int):
    _ensure_access(request, patient_id)
    q = MedicationHistoryQuerySerializer(data=request.query_params)
    q.is_valid(raise_exception=True)
    return _respond(get_medication_history(patient_id, dict(q.validated_data)))


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def medication_interactions(request, patient_id: int):
    _ensure_access(request, patient_id)
    return _respond(check_medication_interactions(patient_id))
