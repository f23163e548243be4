from __future__ import annotations

from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from clinic.permissions import IsPharmacyStaff
from clinic.serializers.common import pagination
from clinic.serializers.finance import (
    ExpenseCreateSerializer,
    ExpenseListQuerySerializer,
    ExpenseSerializer,
    SummaryQuerySerializer,
    TransactionCreateSerializer,
    TransactionListQuerySerializer,
    TransactionSerializer,
)
from clinic.services import ledger
from clinic.services.paging import paginate


@api_view(['GET'])
@permission_classes([IsAuthenticated, IsPharmacyStaff])
def summary(request):
    q = SummaryQuerySerializer(data=request.query_params)
    q.is_valid(raise_exception=True)
    data = ledger.financial_summary(q.validated_data['period'])
    return Response({'ok': True, **data})


@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated, IsPharmacyStaff])
def expenses(request):
    if request.method == 'GET':
        q = ExpenseListQuerySerializer(data=request.query_params)
        q.is_valid(raise_exception=True)
        qs, total_amount = ledger.list_expenses(
            category=q.validated_data.get('category'),
            start=q.validated_data.get('startDate'),
            end=q.validated_data.get('endDate'),
        )
        items, total = paginate(qs, q.validated_data['page'], q.validated_data['pageSize'])
        return Response({'ok': True, 'expenses': ExpenseSerializer(items, many=True).data,
                         'totalAmount': total_amount, 'pagination': pagination(q, total)})

    s = ExpenseCreateSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    vd = s.validated_data
    expense = ledger.record_expense(
        user=request.user,
        category=vd['category'],
        amount=vd['amount'],
        description=vd['description'],
        date=vd.get('date'),
        vendor=vd.get('vendor', ''),
        invoice_no=vd.get('invoiceNo', ''),
        request=request,
    )
    return Response({'ok': True, 'expense': ExpenseSerializer(expense).data}, status=status.HTTP_201_CREATED)


@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated, IsPharmacyStaff])
def transactions(request):
    if request.method == 'GET':
        q = TransactionListQuerySerializer(data=request.query_params)
        q.is_valid(raise_exception=True)
        vd = q.validated_data
        items, total = paginate(
            ledger.list_transactions(
                type=vd.get('type'),
                category=vd.get('category'),
                patient_id=vd.get('patientId'),
                start=vd.get('startDate'),
                end=vd.get('endDate'),
            ),
            vd['page'],
            vd['pageSize'],
        )
        return Response({'ok': True, 'transactions': TransactionSerializer(items, many=True).data,
                         'pagination': pagination(q, total)})

    s = TransactionCreateSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    vd = s.validated_data
    txn = ledger.record_transaction(
        user=request.user,
        type=vd['type'],
        category=vd['category'],
        amount=vd['amount'],
        description=vd['description'],
        reference_type=vd.get('referenceType', ''),
        reference_id=vd.get('referenceId', ''),
        payment_method=vd.get('paymentMethod', ''),
        patient=vd.get('patientId'),
        request=request,
    )
    return Response({'ok': True, 'transaction': TransactionSerializer(txn).data}, status=status.HTTP_201_CREATED)
