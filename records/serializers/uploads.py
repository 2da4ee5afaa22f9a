from rest_framework import serializers


class EcgUploadSerializer(serializers.Serializer):
    patientId = serializers.CharField(max_length=20)
    ecgImage = serializers.FileField()


class DoctorRequestCreateSerializer(serializers.Serializer):
    firstName = serializers.CharField(max_length=150)
    lastName = serializers.CharField(max_length=150)
    email = serializers.EmailField()
    nationalId = serializers.RegexField(r'^\d{6,20}$', max_length=20)
    specialization = serializers.CharField(max_length=100, required=False, allow_blank=True)
    licenseNumber = serializers.CharField(max_length=50, required=False, allow_blank=True)
    medicalCertificate = serializers.FileField(required=False)
    licenseDocument = serializers.FileField(required=False)
    profilePhoto = serializers.FileField(required=False)


class DoctorRequestRejectSerializer(serializers.Serializer):
    reason = serializers.CharField(max_length=255, required=False, allow_blank=True)
