"""
Prescription endpoints.

``POST /api/prescriptions`` is the dispensing entry point: every line is
prescribed and fulfilled in one atomic unit.  The single-prescription
fulfill/cancel endpoints serve prescriptions created Pending elsewhere.
"""
from __future__ import annotations

from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from clinic.permissions import CanPrescribe, IsPharmacyStaff
from clinic.serializers.prescription import (
    FulfillSerializer,
    PrescriptionBatchSerializer,
    PrescriptionListQuerySerializer,
    PrescriptionSerializer,
)
from clinic.services import prescriptions as rx_service


@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated, CanPrescribe])
def prescriptions(request):
    if request.method == 'GET':
        q = PrescriptionListQuerySerializer(data=request.query_params)
        q.is_valid(raise_exception=True)
        qs = rx_service.list_prescriptions(
            status=q.validated_data.get('status'),
            visit_id=q.validated_data.get('visitId'),
            search=q.validated_data.get('search'),
        )
        return Response({'ok': True, 'prescriptions': PrescriptionSerializer(qs, many=True).data})

    s = PrescriptionBatchSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    vd = s.validated_data
    created = rx_service.fulfill_prescription_batch(
        user=request.user,
        items=[dict(item) for item in vd['medications']],
        visit_id=vd.get('visitId'),
        patient_id=vd.get('patientId'),
        prescribed_by=vd.get('prescribedBy'),
        payment_method=vd.get('paymentMethod') or None,
        request=request,
    )
    return Response(
        {
            'ok': True,
            'prescriptions': PrescriptionSerializer(created, many=True).data,
            'totalAmount': rx_service.batch_total(created),
        },
        status=status.HTTP_201_CREATED,
    )


@api_view(['POST'])
@permission_classes([IsAuthenticated, IsPharmacyStaff])
def fulfill_prescription(request, pk):
    s = FulfillSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    rx = rx_service.fulfill_prescription(
        pk, user=request.user, payment_method=s.validated_data.get('paymentMethod') or None, request=request,
    )
    return Response({'ok': True, 'prescription': PrescriptionSerializer(rx).data})


@api_view(['POST'])
@permission_classes([IsAuthenticated, CanPrescribe])
def cancel_prescription(request, pk):
    rx = rx_service.cancel_prescription(pk, user=request.user, request=request)
    return Response({'ok': True, 'prescription': PrescriptionSerializer(rx).data})
