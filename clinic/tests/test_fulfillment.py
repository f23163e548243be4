import uuid
from decimal import Decimal

import pytest
from django.db.models import Sum
from rest_framework.exceptions import NotFound, ValidationError

from clinic.exceptions import (
    AlreadyPaidError,
    InsufficientStockError,
    InvalidPatientError,
    InvalidVisitError,
    MissingAnchorError,
    PrescriptionCancelledError,
    UnknownMedicationError,
)
from clinic.models import AuditLog, FinancialTransaction, MedicationStock, Prescription, Visit
from clinic.services import inventory
from clinic.services import prescriptions as rx_service

pytestmark = pytest.mark.django_db


def nothing_written():
    return (
        Prescription.objects.count() == 0
        and FinancialTransaction.objects.count() == 0
        and Visit.objects.count() == 0
    )


def test_direct_prescription_deducts_stock_and_books_sale(doctor, patient, make_medication, rx_item):
    med = make_medication('Paracetamol', stock=10, price='0.50')

    created = rx_service.fulfill_prescription_batch(
        user=doctor, patient_id=patient.id, items=[rx_item('Paracetamol', 4)],
    )

    assert len(created) == 1
    rx = Prescription.objects.get(pk=created[0].pk)
    assert rx.status == Prescription.STATUS_COMPLETED
    assert rx.payment_status == Prescription.PAYMENT_PAID
    assert rx.paid_at is not None
    assert rx.total_amount == Decimal('2.00')

    med.refresh_from_db()
    assert med.current_stock == 6

    txn = rx.transaction
    assert txn.type == FinancialTransaction.TYPE_SALE
    assert txn.category == FinancialTransaction.CATEGORY_PHARMACY
    assert txn.amount == Decimal('2.00')
    assert txn.reference_type == 'Prescription'
    assert txn.reference_id == str(rx.id)
    assert txn.payment_method == 'Cash'
    assert txn.patient_id == patient.id
    assert txn.created_by_id == doctor.id

    # anchor visit
    assert rx.visit.status == Visit.STATUS_COMPLETED
    assert rx.visit.chief_complaint == 'Direct Prescription'
    assert rx.visit.doctor_id == doctor.id
    assert rx.visit.patient_id == patient.id


def test_existing_visit_is_reused(doctor, visit, make_medication, rx_item):
    make_medication('Paracetamol')
    created = rx_service.fulfill_prescription_batch(
        user=doctor, visit_id=visit.id, items=[rx_item('Paracetamol', 1)], payment_method='Mobile Money',
    )
    assert created[0].visit_id == visit.id
    assert Visit.objects.count() == 1
    assert created[0].transaction.payment_method == 'Mobile Money'


def test_failed_line_rolls_back_whole_batch(doctor, patient, make_medication, rx_item):
    a = make_medication('A', stock=10)
    b = make_medication('B', stock=1)

    with pytest.raises(InsufficientStockError) as exc:
        rx_service.fulfill_prescription_batch(
            user=doctor, patient_id=patient.id, items=[rx_item('A', 2), rx_item('B', 5)],
        )

    assert exc.value.medication == 'B'
    assert exc.value.available == 1
    assert exc.value.requested == 5
    a.refresh_from_db()
    b.refresh_from_db()
    assert a.current_stock == 10
    assert b.current_stock == 1
    assert nothing_written()


def test_unknown_medication_fails_without_writes(doctor, patient, make_medication, rx_item):
    make_medication('Paracetamol')
    with pytest.raises(UnknownMedicationError) as exc:
        rx_service.fulfill_prescription_batch(
            user=doctor, patient_id=patient.id, items=[rx_item('Paracetamol', 1), rx_item('Nonexistent', 1)],
        )
    assert exc.value.medication == 'Nonexistent'
    assert MedicationStock.objects.get(medication_name='Paracetamol').current_stock == 10
    assert nothing_written()


def test_missing_anchor(doctor, make_medication, rx_item):
    make_medication('Paracetamol')
    with pytest.raises(MissingAnchorError):
        rx_service.fulfill_prescription_batch(user=doctor, items=[rx_item('Paracetamol', 1)])
    assert nothing_written()


def test_invalid_visit(doctor, make_medication, rx_item):
    make_medication('Paracetamol')
    with pytest.raises(InvalidVisitError):
        rx_service.fulfill_prescription_batch(
            user=doctor, visit_id=uuid.uuid4(), items=[rx_item('Paracetamol', 1)],
        )
    assert nothing_written()


def test_inactive_patient_cannot_anchor_visit(doctor, patient, make_medication, rx_item):
    make_medication('Paracetamol')
    patient.is_active = False
    patient.save()
    with pytest.raises(InvalidPatientError):
        rx_service.fulfill_prescription_batch(
            user=doctor, patient_id=patient.id, items=[rx_item('Paracetamol', 1)],
        )
    assert nothing_written()


@pytest.mark.parametrize('items', [[], [{'medication': 'Paracetamol', 'dosage': '1', 'frequency': 'x',
                                          'duration': 'y', 'quantity': 0}]])
def test_invalid_items_rejected_before_any_write(doctor, patient, make_medication, items):
    make_medication('Paracetamol')
    with pytest.raises(ValidationError):
        rx_service.fulfill_prescription_batch(user=doctor, patient_id=patient.id, items=items)
    assert nothing_written()


def test_exact_stock_can_only_be_taken_once(doctor, patient, make_medication, rx_item):
    med = make_medication('Amoxicillin', stock=3, price='2.50')
    rx_service.fulfill_prescription_batch(user=doctor, patient_id=patient.id, items=[rx_item('Amoxicillin', 3)])

    with pytest.raises(InsufficientStockError) as exc:
        rx_service.fulfill_prescription_batch(user=doctor, patient_id=patient.id, items=[rx_item('Amoxicillin', 3)])

    assert exc.value.available == 0
    med.refresh_from_db()
    assert med.current_stock == 0
    assert Prescription.objects.count() == 1


def test_sale_total_matches_lines(doctor, patient, make_medication, rx_item):
    make_medication('A', stock=20, price='0.50')
    make_medication('B', stock=20, price='2.50')
    make_medication('C', stock=20, price='1.33')

    created = rx_service.fulfill_prescription_batch(
        user=doctor, patient_id=patient.id, items=[rx_item('A', 3), rx_item('B', 2), rx_item('C', 3)],
    )

    assert [p.medication for p in created] == ['A', 'B', 'C']
    sales = FinancialTransaction.objects.filter(type=FinancialTransaction.TYPE_SALE)
    assert sales.count() == 3
    for p in created:
        assert p.transaction.amount == p.total_amount
    expected = Decimal('1.50') + Decimal('5.00') + Decimal('3.99')
    assert sales.aggregate(total=Sum('amount'))['total'] == expected
    assert rx_service.batch_total(created) == expected


def test_paid_amount_is_a_price_snapshot(doctor, patient, make_medication, rx_item):
    med = make_medication('Paracetamol', stock=10, price='0.50')
    created = rx_service.fulfill_prescription_batch(
        user=doctor, patient_id=patient.id, items=[rx_item('Paracetamol', 4)],
    )
    inventory.update_medication(med.id, user=doctor, selling_price=Decimal('9.99'))

    rx = Prescription.objects.get(pk=created[0].pk)
    assert rx.total_amount == Decimal('2.00')
    assert rx.transaction.amount == Decimal('2.00')


def test_prescriber_and_recorder_can_differ(doctor, pharmacist, patient, make_medication, rx_item):
    make_medication('Paracetamol')
    created = rx_service.fulfill_prescription_batch(
        user=pharmacist, prescribed_by=doctor, patient_id=patient.id, items=[rx_item('Paracetamol', 1)],
    )
    assert created[0].prescribed_by_id == doctor.id
    assert created[0].visit.doctor_id == doctor.id
    assert created[0].transaction.created_by_id == pharmacist.id


def test_batch_is_audited(doctor, patient, make_medication, rx_item):
    make_medication('A')
    make_medication('B')
    rx_service.fulfill_prescription_batch(
        user=doctor, patient_id=patient.id, items=[rx_item('A', 1), rx_item('B', 2)],
    )
    log = AuditLog.objects.get(action='CREATE_PRESCRIPTION_AUTO_FULFILLED')
    assert log.user_id == doctor.id
    assert log.entity_id == 'BATCH'
    assert log.details['count'] == 2
    assert log.details['anchorCreated'] is True


# ---- pending prescriptions ----

def pending(visit, doctor, medication='Paracetamol', quantity=2):
    return Prescription.objects.create(
        visit=visit, prescribed_by=doctor, medication=medication, dosage='1 tablet',
        frequency='Twice daily', duration='3 days', quantity=quantity,
    )


def test_fulfill_pending_prescription(doctor, pharmacist, visit, make_medication):
    med = make_medication('Paracetamol', stock=5, price='0.50', cost='0.30')
    rx = pending(visit, doctor)

    result = rx_service.fulfill_prescription(rx.id, user=pharmacist, payment_method='Card')

    assert result.is_paid
    assert result.status == Prescription.STATUS_COMPLETED
    assert result.total_amount == Decimal('1.00')
    assert result.transaction.reference_id == str(rx.id)
    assert result.transaction.created_by_id == pharmacist.id
    assert result.transaction.payment_method == 'Card'
    med.refresh_from_db()
    assert med.current_stock == 3
    log = AuditLog.objects.get(action='FULFILL_PRESCRIPTION')
    assert Decimal(str(log.details['profit'])) == Decimal('0.40')

    with pytest.raises(AlreadyPaidError):
        rx_service.fulfill_prescription(rx.id, user=pharmacist)
    med.refresh_from_db()
    assert med.current_stock == 3
    assert FinancialTransaction.objects.count() == 1


def test_fulfill_pending_without_stock_leaves_it_pending(doctor, pharmacist, visit, make_medication):
    make_medication('Paracetamol', stock=1)
    rx = pending(visit, doctor, quantity=2)
    with pytest.raises(InsufficientStockError):
        rx_service.fulfill_prescription(rx.id, user=pharmacist)
    rx.refresh_from_db()
    assert rx.payment_status == Prescription.PAYMENT_PENDING
    assert FinancialTransaction.objects.count() == 0


def test_cancelled_prescription_cannot_be_fulfilled(doctor, pharmacist, visit, make_medication):
    make_medication('Paracetamol')
    rx = pending(visit, doctor)
    rx_service.cancel_prescription(rx.id, user=doctor)
    rx.refresh_from_db()
    assert rx.status == Prescription.STATUS_CANCELLED
    with pytest.raises(PrescriptionCancelledError):
        rx_service.fulfill_prescription(rx.id, user=pharmacist)


def test_paid_prescription_cannot_be_cancelled(doctor, patient, make_medication, rx_item):
    make_medication('Paracetamol')
    created = rx_service.fulfill_prescription_batch(
        user=doctor, patient_id=patient.id, items=[rx_item('Paracetamol', 1)],
    )
    with pytest.raises(AlreadyPaidError):
        rx_service.cancel_prescription(created[0].id, user=doctor)


def test_missing_prescription(pharmacist):
    with pytest.raises(NotFound):
        rx_service.fulfill_prescription(uuid.uuid4(), user=pharmacist)


def test_list_prescriptions_filters(doctor, patient, make_medication, rx_item):
    make_medication('Paracetamol')
    make_medication('Ibuprofen')
    rx_service.fulfill_prescription_batch(
        user=doctor, patient_id=patient.id, items=[rx_item('Paracetamol', 1), rx_item('Ibuprofen', 1)],
    )
    assert rx_service.list_prescriptions(search='ibu').count() == 1
    assert rx_service.list_prescriptions(search='Owusu').count() == 2
    assert rx_service.list_prescriptions(status=Prescription.STATUS_ACTIVE).count() == 0
