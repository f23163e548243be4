from rest_framework import serializers

from clinic.models import Prescription, User
from clinic.serializers.common import plain_text


class PrescriptionItemSerializer(serializers.Serializer):
    medication = serializers.CharField(max_length=255)
    dosage = serializers.CharField(max_length=100)
    frequency = serializers.CharField(max_length=100)
    duration = serializers.CharField(max_length=100)
    quantity = serializers.IntegerField(min_value=1)
    instructions = serializers.CharField(required=False, allow_blank=True, allow_null=True)

    def validate_medication(self, v):
        v = plain_text(v)
        if not v:
            raise serializers.ValidationError('Medication is required')
        return v

    def validate_instructions(self, v):
        return plain_text(v)


class PrescriptionBatchSerializer(serializers.Serializer):
    visitId = serializers.UUIDField(required=False, allow_null=True)
    patientId = serializers.UUIDField(required=False, allow_null=True)
    prescribedBy = serializers.PrimaryKeyRelatedField(
        queryset=User.objects.filter(is_active=True), required=False, allow_null=True,
    )
    medications = PrescriptionItemSerializer(many=True, allow_empty=False)
    paymentMethod = serializers.CharField(required=False, allow_blank=True, max_length=50)


class FulfillSerializer(serializers.Serializer):
    paymentMethod = serializers.CharField(required=False, allow_blank=True, max_length=50)


class PrescriptionListQuerySerializer(serializers.Serializer):
    status = serializers.CharField(required=False, allow_blank=True)
    visitId = serializers.UUIDField(required=False)
    search = serializers.CharField(required=False, allow_blank=True)


class PrescriptionSerializer(serializers.ModelSerializer):
    visitId = serializers.UUIDField(source='visit_id', read_only=True)
    patientId = serializers.UUIDField(source='visit.patient_id', read_only=True)
    patientName = serializers.CharField(source='visit.patient.full_name', read_only=True)
    prescribedBy = serializers.UUIDField(source='prescribed_by_id', read_only=True)
    totalAmount = serializers.DecimalField(source='total_amount', max_digits=12, decimal_places=2, read_only=True)
    paymentStatus = serializers.CharField(source='payment_status', read_only=True)
    paidAt = serializers.DateTimeField(source='paid_at', read_only=True)
    transactionId = serializers.UUIDField(source='transaction_id', read_only=True)
    createdAt = serializers.DateTimeField(source='created_at', read_only=True)

    class Meta:
        model = Prescription
        fields = (
            'id', 'visitId', 'patientId', 'patientName', 'prescribedBy', 'medication', 'dosage',
            'frequency', 'duration', 'quantity', 'instructions', 'status', 'totalAmount',
            'paymentStatus', 'paidAt', 'transactionId', 'createdAt',
        )
