import datetime
import uuid

import pytest
from django.utils import timezone
from rest_framework.exceptions import NotFound, ValidationError

from clinic.exceptions import InvalidPatientError
from clinic.models import AuditLog, Visit
from clinic.services import patients as patient_service
from clinic.services import prescriptions as rx_service
from clinic.services import visits as visit_service

pytestmark = pytest.mark.django_db


def test_visit_is_dated_on_creation(patient, doctor):
    before = timezone.now()
    visit = Visit.objects.create(patient=patient, doctor=doctor, chief_complaint='Cough')
    assert visit.visit_date >= before
    assert visit.status == Visit.STATUS_IN_PROGRESS


def test_create_visit_defaults_doctor_to_caller(doctor, patient):
    visit = visit_service.create_visit(user=doctor, patient_id=patient.id, chief_complaint='Fever',
                                       vital_signs={'temperature': 38.2})
    assert visit.doctor == doctor
    assert visit.vital_signs == {'temperature': 38.2}
    log = AuditLog.objects.get(action='CREATE_VISIT')
    assert log.entity_id == str(visit.id)


def test_create_visit_requires_active_patient(doctor, patient):
    patient.is_active = False
    patient.save()
    with pytest.raises(InvalidPatientError):
        visit_service.create_visit(user=doctor, patient_id=patient.id, chief_complaint='Fever')
    assert Visit.objects.count() == 0


def test_update_visit(doctor, visit):
    updated = visit_service.update_visit(visit.id, user=doctor, notes='Rest and fluids',
                                         status=Visit.STATUS_COMPLETED)
    assert updated.notes == 'Rest and fluids'
    assert updated.status == Visit.STATUS_COMPLETED

    with pytest.raises(ValidationError):
        visit_service.update_visit(visit.id, user=doctor, status='Archived')
    with pytest.raises(ValidationError):
        visit_service.update_visit(visit.id, user=doctor, patient_id=visit.patient_id)


def test_add_diagnosis(doctor, visit):
    diagnosis = visit_service.add_diagnosis(visit.id, user=doctor, description='Malaria', icd_code='B54')
    assert list(visit.diagnoses.all()) == [diagnosis]
    assert AuditLog.objects.filter(action='ADD_DIAGNOSIS', entity_id=str(diagnosis.id)).exists()


def test_add_diagnosis_to_missing_visit(doctor):
    with pytest.raises(NotFound):
        visit_service.add_diagnosis(uuid.uuid4(), user=doctor, description='Malaria')


def test_list_visits_newest_first_with_records(doctor, patient, make_medication, rx_item):
    make_medication('Paracetamol', stock=10)
    old = visit_service.create_visit(user=doctor, patient_id=patient.id, chief_complaint='Headache',
                                     visit_date=timezone.now() - datetime.timedelta(days=3))
    rx_service.fulfill_prescription_batch(user=doctor, visit_id=old.id, items=[rx_item('Paracetamol', 2)])
    new = visit_service.create_visit(user=doctor, patient_id=patient.id, chief_complaint='Follow up')

    visits = list(visit_service.list_visits(patient_id=patient.id))
    assert [v.id for v in visits] == [new.id, old.id]
    assert [p.medication for p in visits[1].prescriptions.all()] == ['Paracetamol']
    assert [v.id for v in visit_service.list_visits(status=Visit.STATUS_IN_PROGRESS)] == [new.id, old.id]


def test_list_patients_search_skips_inactive(receptionist):
    ama = patient_service.create_patient(user=receptionist, first_name='Ama', last_name='Owusu',
                                         date_of_birth='1990-05-17', gender='Female', phone_number='0244000001')
    kofi = patient_service.create_patient(user=receptionist, first_name='Kofi', last_name='Owusu',
                                          date_of_birth='1985-02-01', gender='Male', phone_number='0200000000')
    assert {p.id for p in patient_service.list_patients(search='owusu')} == {ama.id, kofi.id}
    assert [p.id for p in patient_service.list_patients(search='0200')] == [kofi.id]

    patient_service.deactivate_patient(kofi.id, user=receptionist)
    assert [p.id for p in patient_service.list_patients(search='owusu')] == [ama.id]
    with pytest.raises(NotFound):
        patient_service.get_patient(kofi.id)


def test_get_patient_includes_recent_visits(doctor, patient):
    for day in range(12):
        visit_service.create_visit(user=doctor, patient_id=patient.id, chief_complaint=f'Visit {day}',
                                   visit_date=timezone.now() - datetime.timedelta(days=day))
    found = patient_service.get_patient(patient.id)
    assert len(found.recent_visits) == 10
    assert found.recent_visits[0].chief_complaint == 'Visit 0'
