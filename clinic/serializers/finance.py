from decimal import Decimal

from rest_framework import serializers

from clinic.models import Expense, FinancialTransaction, Patient
from clinic.serializers.common import PageQuerySerializer, plain_text
from clinic.services.ledger import PERIODS


class SummaryQuerySerializer(serializers.Serializer):
    period = serializers.ChoiceField(choices=PERIODS, required=False, default='month')


class ExpenseCreateSerializer(serializers.Serializer):
    category = serializers.ChoiceField(choices=[c for c, _ in Expense.CATEGORY_CHOICES])
    amount = serializers.DecimalField(max_digits=12, decimal_places=2, min_value=Decimal('0.01'))
    description = serializers.CharField(max_length=255)
    vendor = serializers.CharField(required=False, allow_blank=True, max_length=255)
    invoiceNo = serializers.CharField(required=False, allow_blank=True, max_length=64)
    date = serializers.DateTimeField(required=False, allow_null=True)

    def validate_description(self, v):
        return plain_text(v)


class TransactionCreateSerializer(serializers.Serializer):
    type = serializers.ChoiceField(choices=[c for c, _ in FinancialTransaction.TYPE_CHOICES])
    category = serializers.ChoiceField(choices=[c for c, _ in FinancialTransaction.CATEGORY_CHOICES])
    amount = serializers.DecimalField(max_digits=12, decimal_places=2, min_value=Decimal('0.01'))
    description = serializers.CharField(max_length=255)
    referenceType = serializers.CharField(required=False, allow_blank=True, max_length=64)
    referenceId = serializers.CharField(required=False, allow_blank=True, max_length=64)
    paymentMethod = serializers.CharField(required=False, allow_blank=True, max_length=32)
    patientId = serializers.PrimaryKeyRelatedField(
        queryset=Patient.objects.all(), required=False, allow_null=True,
    )

    def validate_description(self, v):
        return plain_text(v)


class TransactionListQuerySerializer(PageQuerySerializer):
    type = serializers.ChoiceField(choices=[c for c, _ in FinancialTransaction.TYPE_CHOICES], required=False)
    category = serializers.ChoiceField(choices=[c for c, _ in FinancialTransaction.CATEGORY_CHOICES], required=False)
    patientId = serializers.UUIDField(required=False)
    startDate = serializers.DateTimeField(required=False)
    endDate = serializers.DateTimeField(required=False)


class ExpenseListQuerySerializer(PageQuerySerializer):
    category = serializers.ChoiceField(choices=[c for c, _ in Expense.CATEGORY_CHOICES], required=False)
    startDate = serializers.DateTimeField(required=False)
    endDate = serializers.DateTimeField(required=False)


class ExpenseSerializer(serializers.ModelSerializer):
    invoiceNo = serializers.CharField(source='invoice_no')
    createdBy = serializers.UUIDField(source='created_by_id')

    class Meta:
        model = Expense
        fields = ('id', 'category', 'amount', 'description', 'vendor', 'invoiceNo', 'date', 'createdBy')
        read_only_fields = fields


class TransactionSerializer(serializers.ModelSerializer):
    referenceType = serializers.CharField(source='reference_type')
    referenceId = serializers.CharField(source='reference_id')
    paymentMethod = serializers.CharField(source='payment_method')
    patientId = serializers.UUIDField(source='patient_id', allow_null=True)
    createdBy = serializers.UUIDField(source='created_by_id')
    createdAt = serializers.DateTimeField(source='created_at')

    class Meta:
        model = FinancialTransaction
        fields = (
            'id', 'type', 'category', 'amount', 'description', 'referenceType', 'referenceId',
            'paymentMethod', 'patientId', 'createdBy', 'createdAt',
        )
        read_only_fields = fields
