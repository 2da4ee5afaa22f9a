"""
Medical file uploads.

Every stored file gets an organized path from
:mod:`records.services.uploads`; the views only validate input, resolve the
owner and hand the files to the services.
"""
from __future__ import annotations

from rest_framework import status
from rest_framework.decorators import api_view, parser_classes, permission_classes
from rest_framework.parsers import FormParser, MultiPartParser
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from records.models import PatientProfile, Visit
from records.permissions import IsClinicalRole
from records.serializers.uploads import EcgUploadSerializer
from records.services.audit import log_action
from records.services.files import attach_visit_files, store_ecg


def _file_payload(field_file, **extra) -> dict:
    return {'path': field_file.name, 'url': field_file.url, **extra}


@api_view(['POST'])
@permission_classes([IsAuthenticated, IsClinicalRole])
@parser_classes([MultiPartParser, FormParser])
def visit_attachments(request, visit_id: int):
    try:
        visit = Visit.objects.select_related('patient__patient_profile').get(id=visit_id)
    except Visit.DoesNotExist:
        return Response({'success': False, 'message': 'الزيارة غير موجودة'}, status=404)
    files = request.FILES.getlist('files') if hasattr(request.FILES, 'getlist') else []
    try:
        attachments = attach_visit_files(visit, files, uploaded_by=request.user)
    except ValueError as e:
        return Response({'success': False, 'message': str(e)}, status=400)

    log_action(user=request.user, action='visit_attachments_upload', object_type='visit',
               object_id=visit.id, detail={'count': len(attachments)})
    return Response({
        'success': True,
        'attachments': [
            _file_payload(a.file, id=a.id, originalName=a.original_name, contentType=a.content_type, size=a.size)
            for a in attachments
        ],
    }, status=status.HTTP_201_CREATED)


@api_view(['POST'])
@permission_classes([IsAuthenticated, IsClinicalRole])
@parser_classes([MultiPartParser, FormParser])
def ecg_upload(request):
    s = EcgUploadSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    try:
        profile = PatientProfile.objects.select_related('user').get(national_id=s.validated_data['patientId'])
    except PatientProfile.DoesNotExist:
        return Response({'success': False, 'message': 'المريض غير موجود'}, status=404)
    try:
        record = store_ecg(profile.user, s.validated_data['ecgImage'], uploaded_by=request.user)
    except ValueError as e:
        return Response({'success': False, 'message': str(e)}, status=400)

    log_action(user=request.user, action='ecg_upload', object_type='ecg', object_id=record.id)
    return Response({
        'success': True,
        'ecg': _file_payload(record.image, id=record.id, patientId=profile.user_id, contentType=record.content_type),
    }, status=status.HTTP_201_CREATED)
