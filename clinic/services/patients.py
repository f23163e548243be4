from django.db import transaction
from django.db.models import Q
from rest_framework.exceptions import NotFound

from clinic.models import Patient, User, Visit
from clinic.services.audit import log_action

PATIENT_FIELDS = ('first_name', 'last_name', 'date_of_birth', 'gender', 'phone_number', 'address')


def get_patient_or_404(patient_id, *, active_only=True) -> Patient:
    qs = Patient.objects.filter(pk=patient_id)
    if active_only:
        qs = qs.filter(is_active=True)
    patient = qs.first()
    if patient is None:
        raise NotFound('Patient not found')
    return patient


def list_patients(*, search=None):
    qs = Patient.objects.filter(is_active=True)
    if search:
        qs = qs.filter(
            Q(first_name__icontains=search)
            | Q(last_name__icontains=search)
            | Q(phone_number__icontains=search)
        )
    return qs.order_by('-created_at')


def get_patient(patient_id) -> Patient:
    """Active patient with ``recent_visits``: the ten latest, newest first."""
    patient = get_patient_or_404(patient_id)
    recent = Visit.objects.filter(patient=patient).select_related('doctor') \
        .prefetch_related('diagnoses', 'prescriptions').order_by('-visit_date')[:10]
    patient.recent_visits = list(recent)
    return patient


def create_patient(*, user: User, request=None, **fields) -> Patient:
    patient = Patient.objects.create(**{k: v for k, v in fields.items() if k in PATIENT_FIELDS})
    log_action(user=user, action='CREATE_PATIENT', entity='Patient', entity_id=patient.id,
               details={'name': patient.full_name}, request=request)
    return patient


def update_patient(patient_id, *, user: User, request=None, **changes) -> Patient:
    changes = {k: v for k, v in changes.items() if k in PATIENT_FIELDS}
    with transaction.atomic():
        patient = get_patient_or_404(patient_id)
        for field, value in changes.items():
            setattr(patient, field, value)
        patient.save(update_fields=list(changes) + ['updated_at'])
    log_action(user=user, action='UPDATE_PATIENT', entity='Patient', entity_id=patient.id,
               details={'fields': sorted(changes)}, request=request)
    return patient


def deactivate_patient(patient_id, *, user: User, request=None) -> Patient:
    """Soft delete: the row stays so visits and transactions keep their patient."""
    patient = get_patient_or_404(patient_id)
    patient.is_active = False
    patient.save(update_fields=['is_active', 'updated_at'])
    log_action(user=user, action='DELETE_PATIENT', entity='Patient', entity_id=patient.id,
               details={'name': patient.full_name}, request=request)
    return patient
