"""
Visits and diagnoses.

A visit is the anchor every prescription and diagnosis hangs off.  Staff
open visits explicitly; prescription fulfillment opens a minimal
Completed visit when it is given a patient instead of a visit.
"""
import datetime
import logging
from typing import Any, Optional

from django.conf import settings
from django.db import transaction
from django.utils import timezone
from rest_framework.exceptions import NotFound, ValidationError

from clinic.exceptions import InvalidPatientError, InvalidVisitError
from clinic.models import Diagnosis, Patient, User, Visit
from clinic.services.audit import log_action

logger = logging.getLogger(__name__)

EDITABLE_FIELDS = ('chief_complaint', 'vital_signs', 'notes', 'status')
STATUSES = [s for s, _ in Visit.STATUS_CHOICES]


def _active_patient(patient_id) -> Patient:
    patient = Patient.objects.filter(pk=patient_id, is_active=True).first()
    if patient is None:
        raise InvalidPatientError(patient_id)
    return patient


def _with_records(qs):
    return qs.select_related('patient', 'doctor').prefetch_related('diagnoses', 'prescriptions')


def get_visit_or_raise(visit_id) -> Visit:
    visit = Visit.objects.select_related('patient').filter(pk=visit_id).first()
    if visit is None:
        raise InvalidVisitError(visit_id)
    return visit


def create_anchor_visit(patient_id, *, doctor: User) -> Visit:
    """Create the minimal visit a prescription needs when none was given.

    Must be called inside the caller's atomic block so the visit is
    rolled back together with the rest of the batch.
    """
    return Visit.objects.create(
        patient=_active_patient(patient_id),
        doctor=doctor,
        chief_complaint=settings.CLINIC_DIRECT_PRESCRIPTION_COMPLAINT,
        visit_date=timezone.now(),
        status=Visit.STATUS_COMPLETED,
    )


def create_visit(*, user: User, patient_id, chief_complaint: str, doctor: Optional[User]=None,
                 vital_signs: Any=None, notes: str='', visit_date: Optional[datetime.datetime]=None,
                 request=None) -> Visit:
    visit = Visit.objects.create(
        patient=_active_patient(patient_id),
        doctor=doctor or user,
        chief_complaint=chief_complaint,
        vital_signs=vital_signs,
        notes=notes or '',
        visit_date=visit_date or timezone.now(),
    )
    log_action(user=user, action='CREATE_VISIT', entity='Visit', entity_id=visit.id,
               details={'patientId': visit.patient_id}, request=request)
    logger.info('Visit created id=%s patient=%s', visit.id, visit.patient_id)
    return visit


def update_visit(visit_id, *, user: User, request=None, **changes) -> Visit:
    unknown = set(changes) - set(EDITABLE_FIELDS)
    if unknown:
        raise ValidationError({k: 'Field cannot be updated here' for k in unknown})
    if 'status' in changes and changes['status'] not in STATUSES:
        raise ValidationError({'status': f'Must be one of {", ".join(STATUSES)}'})
    with transaction.atomic():
        visit = Visit.objects.select_for_update().filter(pk=visit_id).first()
        if visit is None:
            raise NotFound('Visit not found')
        for field, value in changes.items():
            setattr(visit, field, value)
        visit.save(update_fields=list(changes) + ['updated_at'])
    log_action(user=user, action='UPDATE_VISIT', entity='Visit', entity_id=visit.id,
               details={'fields': sorted(changes)}, request=request)
    return get_visit(visit.id)


def get_visit(visit_id) -> Visit:
    visit = _with_records(Visit.objects.filter(pk=visit_id)).first()
    if visit is None:
        raise NotFound('Visit not found')
    return visit


def list_visits(*, patient_id=None, status: Optional[str]=None):
    qs = Visit.objects.all()
    if patient_id:
        qs = qs.filter(patient_id=patient_id)
    if status:
        qs = qs.filter(status=status)
    return _with_records(qs).order_by('-visit_date', '-created_at')


def add_diagnosis(visit_id, *, user: User, description: str, icd_code: str='', notes: str='',
                  request=None) -> Diagnosis:
    if not Visit.objects.filter(pk=visit_id).exists():
        raise NotFound('Visit not found')
    diagnosis = Diagnosis.objects.create(
        visit_id=visit_id,
        description=description,
        icd_code=icd_code or '',
        notes=notes or '',
    )
    log_action(user=user, action='ADD_DIAGNOSIS', entity='Diagnosis', entity_id=diagnosis.id,
               details={'visitId': visit_id}, request=request)
    logger.info('Diagnosis added id=%s visit=%s', diagnosis.id, visit_id)
    return diagnosis
