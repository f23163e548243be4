"""
Patient management views.

Patients are registered by front-desk and clinical staff.  Deleting a
patient only clears ``is_active`` so that visits, prescriptions and
ledger rows keep pointing at a real record.
"""
from __future__ import annotations

from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from clinic.permissions import IsFrontDeskOrReadOnly
from clinic.serializers.common import pagination
from clinic.serializers.patient import (
    PatientCreateSerializer,
    PatientDetailSerializer,
    PatientListQuerySerializer,
    PatientSerializer,
)
from clinic.services import patients as patient_service
from clinic.services.paging import paginate


@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated, IsFrontDeskOrReadOnly])
def patients(request):
    if request.method == 'GET':
        q = PatientListQuerySerializer(data=request.query_params)
        q.is_valid(raise_exception=True)
        items, total = paginate(
            patient_service.list_patients(search=q.validated_data.get('search')),
            q.validated_data['page'],
            q.validated_data['pageSize'],
        )
        return Response({'ok': True, 'patients': PatientSerializer(items, many=True).data,
                         'pagination': pagination(q, total)})

    s = PatientCreateSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    patient = patient_service.create_patient(user=request.user, request=request, **s.to_model_fields())
    return Response({'ok': True, 'patient': PatientSerializer(patient).data}, status=status.HTTP_201_CREATED)


@api_view(['GET', 'PUT', 'DELETE'])
@permission_classes([IsAuthenticated, IsFrontDeskOrReadOnly])
def patient_detail(request, pk):
    if request.method == 'GET':
        patient = patient_service.get_patient(pk)
        return Response({'ok': True, 'patient': PatientDetailSerializer(patient).data})

    if request.method == 'DELETE':
        patient_service.deactivate_patient(pk, user=request.user, request=request)
        return Response({'ok': True})

    s = PatientCreateSerializer(data=request.data, partial=True)
    s.is_valid(raise_exception=True)
    patient = patient_service.update_patient(pk, user=request.user, request=request, **s.to_model_fields())
    return Response({'ok': True, 'patient': PatientSerializer(patient).data})
