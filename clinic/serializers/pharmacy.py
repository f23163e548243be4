from rest_framework import serializers

from clinic.models import MedicationStock
from clinic.serializers.common import plain_text

# camelCase request keys -> model fields
FIELD_MAP = {
    'medicationName': 'medication_name',
    'description': 'description',
    'category': 'category',
    'currentStock': 'current_stock',
    'minimumStock': 'minimum_stock',
    'costPrice': 'cost_price',
    'sellingPrice': 'selling_price',
    'expiryDate': 'expiry_date',
    'supplier': 'supplier',
    'batchNumber': 'batch_number',
}


def to_model_fields(data: dict) -> dict:
    return {FIELD_MAP[k]: v for k, v in data.items() if k in FIELD_MAP}


class MedicationWriteSerializer(serializers.Serializer):
    medicationName = serializers.CharField(max_length=255)
    description = serializers.CharField(required=False, allow_blank=True)
    category = serializers.CharField(required=False, allow_blank=True, max_length=100)
    currentStock = serializers.IntegerField(required=False, min_value=0)
    minimumStock = serializers.IntegerField(required=False, min_value=0)
    costPrice = serializers.DecimalField(max_digits=12, decimal_places=2, min_value=0)
    sellingPrice = serializers.DecimalField(max_digits=12, decimal_places=2, min_value=0)
    expiryDate = serializers.DateField(required=False, allow_null=True)
    supplier = serializers.CharField(required=False, allow_blank=True, max_length=255)
    batchNumber = serializers.CharField(required=False, allow_blank=True, max_length=64)

    def validate_medicationName(self, v):
        v = plain_text(v)
        if not v:
            raise serializers.ValidationError('Medication name is required')
        return v

    def validate_description(self, v):
        return plain_text(v)


class MedicationUpdateSerializer(MedicationWriteSerializer):
    """Partial edit; stock is not editable here."""
    currentStock = None

    def __init__(self, *args, **kwargs):
        kwargs.setdefault('partial', True)
        super().__init__(*args, **kwargs)


class StockAdjustSerializer(serializers.Serializer):
    quantity = serializers.IntegerField(min_value=1)
    type = serializers.ChoiceField(choices=['add', 'subtract'])
    newCost = serializers.DecimalField(max_digits=12, decimal_places=2, min_value=0, required=False, allow_null=True)
    newExpiry = serializers.DateField(required=False, allow_null=True)


class MedicationListQuerySerializer(serializers.Serializer):
    search = serializers.CharField(required=False, allow_blank=True)
    category = serializers.CharField(required=False, allow_blank=True)
    status = serializers.ChoiceField(
        choices=['available', 'low_stock', 'out_of_stock', 'expired'], required=False,
    )


class MedicationSerializer(serializers.ModelSerializer):
    medicationName = serializers.CharField(source='medication_name')
    currentStock = serializers.IntegerField(source='current_stock')
    minimumStock = serializers.IntegerField(source='minimum_stock')
    costPrice = serializers.DecimalField(source='cost_price', max_digits=12, decimal_places=2)
    sellingPrice = serializers.DecimalField(source='selling_price', max_digits=12, decimal_places=2)
    expiryDate = serializers.DateField(source='expiry_date')
    batchNumber = serializers.CharField(source='batch_number')
    isLow = serializers.BooleanField(source='is_low')
    updatedAt = serializers.DateTimeField(source='updated_at')

    class Meta:
        model = MedicationStock
        fields = (
            'id', 'medicationName', 'description', 'category', 'currentStock', 'minimumStock',
            'costPrice', 'sellingPrice', 'expiryDate', 'supplier', 'batchNumber', 'isLow', 'updatedAt',
        )
        read_only_fields = fields
