from rest_framework import serializers

from clinic.models import Patient
from clinic.serializers.common import PageQuerySerializer, plain_text
from clinic.serializers.visit import VisitSerializer

FIELD_MAP = {
    'firstName': 'first_name',
    'lastName': 'last_name',
    'dateOfBirth': 'date_of_birth',
    'gender': 'gender',
    'phoneNumber': 'phone_number',
    'address': 'address',
}


class PatientCreateSerializer(serializers.Serializer):
    firstName = serializers.CharField(max_length=100)
    lastName = serializers.CharField(max_length=100)
    dateOfBirth = serializers.DateField()
    gender = serializers.ChoiceField(choices=[c for c, _ in Patient.GENDER_CHOICES])
    phoneNumber = serializers.CharField(max_length=32)
    address = serializers.CharField(required=False, allow_blank=True)

    def validate_firstName(self, v):
        v = plain_text(v)
        if not v:
            raise serializers.ValidationError('First name is required')
        return v

    def validate_lastName(self, v):
        v = plain_text(v)
        if not v:
            raise serializers.ValidationError('Last name is required')
        return v

    def validate_phoneNumber(self, v):
        return plain_text(v)

    def validate_address(self, v):
        return plain_text(v)

    def to_model_fields(self) -> dict:
        return {FIELD_MAP[k]: v for k, v in self.validated_data.items() if k in FIELD_MAP}


class PatientSerializer(serializers.ModelSerializer):
    firstName = serializers.CharField(source='first_name')
    lastName = serializers.CharField(source='last_name')
    dateOfBirth = serializers.DateField(source='date_of_birth')
    phoneNumber = serializers.CharField(source='phone_number')
    isActive = serializers.BooleanField(source='is_active')

    class Meta:
        model = Patient
        fields = ('id', 'firstName', 'lastName', 'dateOfBirth', 'gender', 'phoneNumber', 'address', 'isActive')
        read_only_fields = fields


class PatientListQuerySerializer(PageQuerySerializer):
    search = serializers.CharField(required=False, allow_blank=True)


class PatientDetailSerializer(PatientSerializer):
    recentVisits = VisitSerializer(source='recent_visits', many=True, read_only=True)

    class Meta(PatientSerializer.Meta):
        fields = PatientSerializer.Meta.fields + ('recentVisits',)
        read_only_fields = fields
