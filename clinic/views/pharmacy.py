"""
Pharmacy (Stock Ledger) endpoints.

Reading the catalogue is open to any signed-in staff member; creating,
editing and adjusting stock needs a pharmacist or admin.
"""
from __future__ import annotations

from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from clinic.permissions import IsPharmacyStaff, IsPharmacyStaffOrReadOnly
from clinic.serializers.pharmacy import (
    MedicationListQuerySerializer,
    MedicationSerializer,
    MedicationUpdateSerializer,
    MedicationWriteSerializer,
    StockAdjustSerializer,
    to_model_fields,
)
from clinic.services import inventory


@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated, IsPharmacyStaffOrReadOnly])
def medications(request):
    if request.method == 'GET':
        q = MedicationListQuerySerializer(data=request.query_params)
        q.is_valid(raise_exception=True)
        qs = inventory.list_medications(**q.validated_data)
        return Response({'ok': True, 'medications': MedicationSerializer(qs, many=True).data})

    s = MedicationWriteSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    med = inventory.create_medication(user=request.user, request=request, **to_model_fields(s.validated_data))
    return Response({'ok': True, 'medication': MedicationSerializer(med).data}, status=status.HTTP_201_CREATED)


@api_view(['GET', 'PUT'])
@permission_classes([IsAuthenticated, IsPharmacyStaffOrReadOnly])
def medication_detail(request, pk):
    if request.method == 'GET':
        return Response({'ok': True, 'medication': MedicationSerializer(inventory.get_medication(pk)).data})

    s = MedicationUpdateSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    med = inventory.update_medication(pk, user=request.user, request=request, **to_model_fields(s.validated_data))
    return Response({'ok': True, 'medication': MedicationSerializer(med).data})


@api_view(['POST'])
@permission_classes([IsAuthenticated, IsPharmacyStaff])
def adjust_stock(request, pk):
    s = StockAdjustSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    vd = s.validated_data
    med = inventory.adjust_stock(
        pk,
        vd['quantity'],
        vd['type'],
        user=request.user,
        new_cost=vd.get('newCost'),
        new_expiry=vd.get('newExpiry'),
        request=request,
    )
    return Response({'ok': True, 'medication': MedicationSerializer(med).data})


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def low_stock(request):
    alerts = inventory.low_stock_alerts()
    return Response({'ok': True, 'medications': MedicationSerializer(alerts, many=True).data})


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def categories(request):
    return Response({'ok': True, 'categories': inventory.medication_categories()})
