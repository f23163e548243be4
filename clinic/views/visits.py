"""
Visit and diagnosis endpoints.

Any signed-in staff member can read visits.  Opening and editing a visit
is clinical work (admin, doctor or nurse); diagnoses are recorded by
doctors and admins.
"""
from __future__ import annotations

from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from clinic.permissions import CanPrescribe, IsClinicalStaffOrReadOnly
from clinic.serializers.common import pagination
from clinic.serializers.visit import (
    DiagnosisCreateSerializer,
    DiagnosisSerializer,
    VisitCreateSerializer,
    VisitListQuerySerializer,
    VisitSerializer,
    VisitUpdateSerializer,
    to_model_fields,
)
from clinic.services import visits as visit_service
from clinic.services.paging import paginate


@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated, IsClinicalStaffOrReadOnly])
def visits(request):
    if request.method == 'GET':
        q = VisitListQuerySerializer(data=request.query_params)
        q.is_valid(raise_exception=True)
        items, total = paginate(
            visit_service.list_visits(
                patient_id=q.validated_data.get('patientId'),
                status=q.validated_data.get('status'),
            ),
            q.validated_data['page'],
            q.validated_data['pageSize'],
        )
        return Response({'ok': True, 'visits': VisitSerializer(items, many=True).data,
                         'pagination': pagination(q, total)})

    s = VisitCreateSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    vd = s.validated_data
    visit = visit_service.create_visit(
        user=request.user,
        patient_id=vd['patientId'],
        doctor=vd.get('doctorId'),
        chief_complaint=vd['chiefComplaint'],
        vital_signs=vd.get('vitalSigns'),
        notes=vd.get('notes', ''),
        visit_date=vd.get('visitDate'),
        request=request,
    )
    visit = visit_service.get_visit(visit.id)
    return Response({'ok': True, 'visit': VisitSerializer(visit).data}, status=status.HTTP_201_CREATED)


@api_view(['GET', 'PUT'])
@permission_classes([IsAuthenticated, IsClinicalStaffOrReadOnly])
def visit_detail(request, pk):
    if request.method == 'GET':
        return Response({'ok': True, 'visit': VisitSerializer(visit_service.get_visit(pk)).data})

    s = VisitUpdateSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    visit = visit_service.update_visit(pk, user=request.user, request=request, **to_model_fields(s.validated_data))
    return Response({'ok': True, 'visit': VisitSerializer(visit).data})


@api_view(['POST'])
@permission_classes([IsAuthenticated, CanPrescribe])
def add_diagnosis(request, pk):
    s = DiagnosisCreateSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    vd = s.validated_data
    diagnosis = visit_service.add_diagnosis(
        pk,
        user=request.user,
        description=vd['description'],
        icd_code=vd.get('icdCode', ''),
        notes=vd.get('notes', ''),
        request=request,
    )
    return Response({'ok': True, 'diagnosis': DiagnosisSerializer(diagnosis).data}, status=status.HTTP_201_CREATED)
