import pytest
from django.db import DatabaseError
from django.test import RequestFactory

from clinic.exceptions import InsufficientStockError
from clinic.models import AuditLog, Patient, Prescription
from clinic.services import patients as patient_service
from clinic.services import prescriptions as rx_service
from clinic.services.audit import log_action

pytestmark = pytest.mark.django_db


def test_log_action_records_client_metadata(doctor):
    request = RequestFactory().post('/api/prescriptions', HTTP_X_FORWARDED_FOR='10.0.0.7, 127.0.0.1',
                                    HTTP_USER_AGENT='ClinicDesk/1.0')
    log = log_action(user=doctor, action='TEST', entity='Thing', entity_id=42, details={'a': 1}, request=request)
    assert log.ip_address == '10.0.0.7'
    assert log.user_agent == 'ClinicDesk/1.0'
    assert log.entity_id == '42'


def test_audit_failure_does_not_fail_fulfillment(monkeypatch, doctor, patient, make_medication, rx_item):
    make_medication('Paracetamol')

    def broken(*args, **kwargs):
        raise DatabaseError('audit table is locked')

    monkeypatch.setattr(AuditLog.objects, 'create', broken)

    created = rx_service.fulfill_prescription_batch(
        user=doctor, patient_id=patient.id, items=[rx_item('Paracetamol', 2)],
    )

    assert Prescription.objects.filter(pk=created[0].pk, payment_status=Prescription.PAYMENT_PAID).exists()
    assert AuditLog.objects.count() == 0


def test_failed_fulfillment_is_not_audited(doctor, patient, make_medication, rx_item):
    make_medication('Paracetamol', stock=1)
    with pytest.raises(InsufficientStockError):
        rx_service.fulfill_prescription_batch(user=doctor, patient_id=patient.id, items=[rx_item('Paracetamol', 2)])
    assert AuditLog.objects.count() == 0


def test_patient_lifecycle_is_audited(receptionist):
    patient = patient_service.create_patient(
        user=receptionist, first_name='Kofi', last_name='Boateng', date_of_birth='1985-02-01',
        gender='Male', phone_number='0200000000',
    )
    patient_service.update_patient(patient.id, user=receptionist, address='12 Ring Road')
    patient_service.deactivate_patient(patient.id, user=receptionist)

    patient = Patient.objects.get(pk=patient.id)
    assert patient.address == '12 Ring Road'
    assert patient.is_active is False
    actions = list(AuditLog.objects.order_by('id').values_list('action', flat=True))
    assert actions == ['CREATE_PATIENT', 'UPDATE_PATIENT', 'DELETE_PATIENT']
