from django.contrib.auth import get_user_model
from rest_framework import serializers

User = get_user_model()


class LoginSerializer(serializers.Serializer):
    """Credentials for token login.

    The web client logs in with an email address; staff tools send a
    username.  Either is resolved to ``username`` in the validated data.
    """
    username = serializers.CharField(required=False, allow_blank=True)
    email = serializers.EmailField(required=False)
    password = serializers.CharField(trim_whitespace=False)

    def validate_password(self, v):
        if not v:
            raise serializers.ValidationError('كلمة المرور مطلوبة')
        return v

    def validate(self, attrs):
        username = (attrs.get('username') or '').strip()
        email = attrs.get('email')
        if not username and not email:
            raise serializers.ValidationError({'username': 'اسم المستخدم أو البريد الإلكتروني مطلوب'})
        if not username:
            user = User.objects.filter(email__iexact=email).only('username').first()
            # Unknown emails fall through to a normal failed login
            username = user.username if user else email
        attrs['username'] = username
        return attrs
