from rest_framework import serializers


class MedicationHistoryQuerySerializer(serializers.Serializer):
    startDate = serializers.DateField(required=False)
    endDate = serializers.DateField(required=False)
    medicationName = serializers.CharField(max_length=100, required=False, allow_blank=True)
    page = serializers.IntegerField(min_value=1, required=False)
    limit = serializers.IntegerField(min_value=1, max_value=200, required=False)

    def validate(self, attrs):
        start, end = attrs.get('startDate'), attrs.get('endDate')
        if start and end and start > end:
            raise serializers.ValidationError({'endDate': 'تاريخ النهاية يجب أن يكون بعد تاريخ البداية'})
        return attrs
