"""
Authentication views.

This module defines the login endpoint used by the front-end.  By
isolating these views from the authentication class (see
``records.authentication``) we prevent circular imports when Django REST
framework initialises authentication classes.
"""
from __future__ import annotations

from django.contrib.auth import authenticate
from rest_framework.authtoken.models import Token
from rest_framework.decorators import api_view, permission_classes
from rest_framework.permissions import AllowAny
from rest_framework.response import Response

from records.serializers.auth import LoginSerializer
from records.services.audit import log_action


@api_view(['POST'])
@permission_classes([AllowAny])
def login_view(request):
    """Username/password login returning a DRF token."""
    s = LoginSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    username = s.validated_data['username']
    password = s.validated_data['password']

    user = authenticate(request, username=username, password=password)
    if not user:
        log_action(user=None, action='login', object_type='user',
                   detail={'result': 'fail', 'username': username, 'ip': request.META.get('REMOTE_ADDR')})
        return Response({'ok': False, 'detail': 'اسم المستخدم أو كلمة المرور غير صحيحة'}, status=400)

    log_action(user=user, action='login', object_type='user', object_id=user.id,
               detail={'result': 'ok', 'ip': request.META.get('REMOTE_ADDR')})

    token_obj, _ = Token.objects.get_or_create(user=user)
    return Response({
        'ok': True,
        'token': token_obj.key,
        'role': user.role,
        'user': {
            'id': user.id,
            'username': user.username,
            'name': user.get_full_name() or user.username,
            'role': user.role,
        },
    }, status=200)
