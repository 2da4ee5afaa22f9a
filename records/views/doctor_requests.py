"""
Doctor registration requests.

Anyone may submit a request with the three optional documents
(``medicalCertificate``, ``licenseDocument``, ``profilePhoto``).  Admins
approve or reject it; approval moves the documents out of the pending
directory and creates the doctor account.
"""
from __future__ import annotations

from rest_framework import status
from rest_framework.decorators import api_view, parser_classes, permission_classes
from rest_framework.parsers import FormParser, MultiPartParser
from rest_framework.permissions import AllowAny, IsAuthenticated
from rest_framework.response import Response

from records.models import DoctorRequest
from records.permissions import IsAdminRole
from records.serializers.uploads import DoctorRequestCreateSerializer, DoctorRequestRejectSerializer
from records.services.audit import log_action
from records.services.doctor_requests import (
    DOCUMENT_FIELDS,
    approve_doctor_request,
    create_doctor_request,
    reject_doctor_request,
)


def _serialize_request(req: DoctorRequest) -> dict:
    documents = {}
    for key, field_name in DOCUMENT_FIELDS.items():
        field_file = getattr(req, field_name)
        documents[key] = field_file.name if field_file else None
    return {
        'id': req.id,
        'requestId': req.request_token,
        'status': req.status,
        'firstName': req.first_name,
        'lastName': req.last_name,
        'nationalId': req.national_id,
        'specialization': req.specialization,
        'documents': documents,
        'createdAt': req.created_at.isoformat() if req.created_at else None,
        'reviewedAt': req.reviewed_at.isoformat() if req.reviewed_at else None,
    }


def _get_request(pk: int):
    return DoctorRequest.objects.filter(id=pk).first()


@api_view(['POST'])
@permission_classes([AllowAny])
@parser_classes([MultiPartParser, FormParser])
def submit_doctor_request(request):
    s = DoctorRequestCreateSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    vd = s.validated_data
    try:
        req = create_doctor_request(
            first_name=vd['firstName'],
            last_name=vd['lastName'],
            email=vd['email'],
            national_id=vd['nationalId'],
            specialization=vd.get('specialization', ''),
            license_number=vd.get('licenseNumber', ''),
            documents={key: vd.get(key) for key in DOCUMENT_FIELDS},
        )
    except ValueError as e:
        return Response({'success': False, 'message': str(e)}, status=400)
    log_action(user=None, action='doctor_request_submit', object_type='doctor_request', object_id=req.id)
    return Response({'success': True, 'request': _serialize_request(req)}, status=status.HTTP_201_CREATED)


@api_view(['POST'])
@permission_classes([IsAuthenticated, IsAdminRole])
def approve_request(request, pk: int):
    req = _get_request(pk)
    if not req:
        return Response({'success': False, 'message': 'الطلب غير موجود'}, status=404)
    try:
        req, doctor, password = approve_doctor_request(req, request.user)
    except ValueError as e:
        return Response({'success': False, 'message': str(e)}, status=400)
    log_action(user=request.user, action='doctor_request_approve', object_type='doctor_request',
               object_id=req.id, detail={'doctorUserId': doctor.id})
    return Response({
        'success': True,
        'request': _serialize_request(req),
        'doctor': {'id': doctor.id, 'username': doctor.username},
        'initialPassword': password,
    })


@api_view(['POST'])
@permission_classes([IsAuthenticated, IsAdminRole])
def reject_request(request, pk: int):
    s = DoctorRequestRejectSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    req = _get_request(pk)
    if not req:
        return Response({'success': False, 'message': 'الطلب غير موجود'}, status=404)
    try:
        req = reject_doctor_request(req, request.user, s.validated_data.get('reason', ''))
    except ValueError as e:
        return Response({'success': False, 'message': str(e)}, status=400)
    log_action(user=request.user, action='doctor_request_reject', object_type='doctor_request', object_id=req.id)
    return Response({'success': True, 'request': _serialize_request(req)})
