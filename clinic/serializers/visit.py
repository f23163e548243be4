from rest_framework import serializers

from clinic.models import Diagnosis, User, Visit
from clinic.permissions import PRESCRIBER_ROLES
from clinic.serializers.common import PageQuerySerializer, plain_text
from clinic.serializers.prescription import PrescriptionSerializer

# camelCase request keys -> model fields
FIELD_MAP = {
    'chiefComplaint': 'chief_complaint',
    'vitalSigns': 'vital_signs',
    'notes': 'notes',
    'status': 'status',
}


def to_model_fields(data: dict) -> dict:
    return {FIELD_MAP[k]: v for k, v in data.items() if k in FIELD_MAP}


class VisitUpdateSerializer(serializers.Serializer):
    chiefComplaint = serializers.CharField(max_length=255)
    vitalSigns = serializers.JSONField(required=False, allow_null=True)
    notes = serializers.CharField(required=False, allow_blank=True)
    status = serializers.ChoiceField(choices=[s for s, _ in Visit.STATUS_CHOICES], required=False)

    def __init__(self, *args, **kwargs):
        kwargs.setdefault('partial', True)
        super().__init__(*args, **kwargs)

    def validate_chiefComplaint(self, v):
        v = plain_text(v)
        if not v:
            raise serializers.ValidationError('Chief complaint is required')
        return v

    def validate_notes(self, v):
        return plain_text(v)


class VisitCreateSerializer(VisitUpdateSerializer):
    patientId = serializers.UUIDField()
    doctorId = serializers.PrimaryKeyRelatedField(
        queryset=User.objects.filter(is_active=True, role__in=PRESCRIBER_ROLES), required=False, allow_null=True,
    )
    visitDate = serializers.DateTimeField(required=False, allow_null=True)
    status = None

    def __init__(self, *args, **kwargs):
        kwargs.setdefault('partial', False)
        super().__init__(*args, **kwargs)


class VisitListQuerySerializer(PageQuerySerializer):
    patientId = serializers.UUIDField(required=False)
    status = serializers.ChoiceField(choices=[s for s, _ in Visit.STATUS_CHOICES], required=False)


class DiagnosisCreateSerializer(serializers.Serializer):
    icdCode = serializers.CharField(required=False, allow_blank=True, max_length=20)
    description = serializers.CharField(max_length=255)
    notes = serializers.CharField(required=False, allow_blank=True)

    def validate_icdCode(self, v):
        return plain_text(v).upper()

    def validate_description(self, v):
        v = plain_text(v)
        if not v:
            raise serializers.ValidationError('Description is required')
        return v

    def validate_notes(self, v):
        return plain_text(v)


class DiagnosisSerializer(serializers.ModelSerializer):
    visitId = serializers.UUIDField(source='visit_id')
    icdCode = serializers.CharField(source='icd_code')
    createdAt = serializers.DateTimeField(source='created_at')

    class Meta:
        model = Diagnosis
        fields = ('id', 'visitId', 'icdCode', 'description', 'notes', 'createdAt')
        read_only_fields = fields


class VisitSerializer(serializers.ModelSerializer):
    patientId = serializers.UUIDField(source='patient_id')
    patientName = serializers.CharField(source='patient.full_name')
    doctorId = serializers.UUIDField(source='doctor_id')
    doctorName = serializers.CharField(source='doctor.get_full_name')
    visitDate = serializers.DateTimeField(source='visit_date')
    chiefComplaint = serializers.CharField(source='chief_complaint')
    vitalSigns = serializers.JSONField(source='vital_signs')
    diagnoses = DiagnosisSerializer(many=True)
    prescriptions = PrescriptionSerializer(many=True)
    createdAt = serializers.DateTimeField(source='created_at')

    class Meta:
        model = Visit
        fields = (
            'id', 'patientId', 'patientName', 'doctorId', 'doctorName', 'visitDate', 'chiefComplaint',
            'vitalSigns', 'notes', 'status', 'diagnoses', 'prescriptions', 'createdAt',
        )
        read_only_fields = fields
