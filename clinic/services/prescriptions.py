"""
Prescription fulfillment.

A fulfillment converts requested medication lines into completed, paid
sales: stock is deducted, one SALE transaction is booked per line at the
current selling price, and the prescription rows are written as
Completed/Paid.  A batch is all-or-nothing; the first failing line rolls
back every write of the batch, including an auto-created anchor visit.
"""
import logging
import uuid
from typing import Iterable, List, Mapping, Optional

from django.conf import settings
from django.db import transaction
from django.db.models import Q
from django.utils import timezone
from rest_framework.exceptions import NotFound, ValidationError

from clinic.exceptions import AlreadyPaidError, MissingAnchorError, PrescriptionCancelledError
from clinic.models import FinancialTransaction, MedicationStock, Patient, Prescription, User, Visit
from clinic.services import inventory, ledger, visits
from clinic.services.audit import log_action

logger = logging.getLogger(__name__)

REQUIRED_ITEM_FIELDS = ('medication', 'dosage', 'frequency', 'duration', 'quantity')


def _validate_items(items: List[Mapping]) -> None:
    if not items:
        raise ValidationError({'medications': 'At least one medication is required'})
    errors = {}
    for index, item in enumerate(items):
        missing = [f for f in REQUIRED_ITEM_FIELDS if item.get(f) in (None, '')]
        if missing:
            errors[index] = {f: 'This field is required.' for f in missing}
            continue
        quantity = item['quantity']
        if not isinstance(quantity, int) or isinstance(quantity, bool) or quantity <= 0:
            errors[index] = {'quantity': 'Quantity must be positive'}
    if errors:
        raise ValidationError({'medications': errors})


def _book_sale(*, med: MedicationStock, quantity: int, created_by: User, patient: Optional[Patient],
               payment_method: str, prescription_id) -> FinancialTransaction:
    total = ledger.money(med.selling_price * quantity)
    return ledger.write_transaction(
        created_by=created_by,
        type=FinancialTransaction.TYPE_SALE,
        category=FinancialTransaction.CATEGORY_PHARMACY,
        amount=total,
        description=f'Prescription fulfillment: {med.medication_name} (Qty: {quantity})',
        reference_type='Prescription',
        reference_id=prescription_id,
        payment_method=payment_method,
        patient=patient,
    )


def _fulfill_line(item: Mapping, *, visit: Visit, prescriber: User, created_by: User,
                  payment_method: str) -> Prescription:
    med = inventory.lock_medication(item['medication'])
    quantity = item['quantity']
    inventory.deduct_stock(med, quantity)

    # The sale references the prescription, so its id is fixed up front.
    prescription_id = uuid.uuid4()
    txn = _book_sale(
        med=med, quantity=quantity, created_by=created_by, patient=visit.patient,
        payment_method=payment_method, prescription_id=prescription_id,
    )
    return Prescription.objects.create(
        id=prescription_id,
        visit=visit,
        prescribed_by=prescriber,
        medication=med.medication_name,
        dosage=item['dosage'],
        frequency=item['frequency'],
        duration=item['duration'],
        quantity=quantity,
        instructions=item.get('instructions') or '',
        status=Prescription.STATUS_COMPLETED,
        payment_status=Prescription.PAYMENT_PAID,
        total_amount=txn.amount,
        paid_at=timezone.now(),
        transaction=txn,
    )


def fulfill_prescription_batch(*, user: User, items: List[Mapping], visit_id=None, patient_id=None,
                               prescribed_by: Optional[User]=None, payment_method: Optional[str]=None,
                               request=None) -> List[Prescription]:
    """Prescribe and immediately dispense a list of medications.

    ``visit_id`` anchors the prescriptions to an existing visit; otherwise
    a Completed "direct prescription" visit is created for ``patient_id``
    with the prescriber as doctor.  The prescriber defaults to ``user``;
    sales are always attributed to ``user``.

    Raises MissingAnchorError, InvalidVisitError, InvalidPatientError,
    UnknownMedicationError or InsufficientStockError; on any of them
    nothing is written.
    """
    if not visit_id and not patient_id:
        raise MissingAnchorError()
    _validate_items(items)
    prescribed_by = prescribed_by or user
    payment_method = payment_method or settings.CLINIC_DEFAULT_PAYMENT_METHOD

    with transaction.atomic():
        if visit_id:
            visit = visits.get_visit_or_raise(visit_id)
        else:
            visit = visits.create_anchor_visit(patient_id, doctor=prescribed_by)
        created = [
            _fulfill_line(item, visit=visit, prescriber=prescribed_by, created_by=user,
                          payment_method=payment_method)
            for item in items
        ]

    total_value = sum((p.total_amount for p in created), ledger.money(0))
    log_action(
        user=user, action='CREATE_PRESCRIPTION_AUTO_FULFILLED', entity='Prescription',
        entity_id=created[0].id if len(created) == 1 else 'BATCH',
        details={
            'count': len(created),
            'visitId': visit.id,
            'anchorCreated': not visit_id,
            'prescriptionIds': [p.id for p in created],
            'totalValue': total_value,
        },
        request=request,
    )
    logger.info('Prescriptions created and fulfilled count=%s visit=%s total=%s',
                len(created), visit.id, total_value)
    return created


def fulfill_prescription(prescription_id, *, user: User, payment_method: Optional[str]=None,
                         request=None) -> Prescription:
    """Dispense one existing Pending prescription."""
    payment_method = payment_method or settings.CLINIC_DEFAULT_PAYMENT_METHOD
    with transaction.atomic():
        rx = Prescription.objects.select_for_update(of=('self',)).select_related('visit__patient') \
            .filter(pk=prescription_id).first()
        if rx is None:
            raise NotFound('Prescription not found')
        if rx.is_paid:
            raise AlreadyPaidError()
        if rx.status == Prescription.STATUS_CANCELLED:
            raise PrescriptionCancelledError()

        med = inventory.lock_medication(rx.medication)
        inventory.deduct_stock(med, rx.quantity)
        txn = _book_sale(
            med=med, quantity=rx.quantity, created_by=user, patient=rx.visit.patient,
            payment_method=payment_method, prescription_id=rx.id,
        )
        rx.total_amount = txn.amount
        rx.payment_status = Prescription.PAYMENT_PAID
        rx.paid_at = timezone.now()
        rx.transaction = txn
        rx.status = Prescription.STATUS_COMPLETED
        rx.save(update_fields=['total_amount', 'payment_status', 'paid_at', 'transaction', 'status', 'updated_at'])

    cost_amount = ledger.money(med.cost_price * rx.quantity)
    log_action(
        user=user, action='FULFILL_PRESCRIPTION', entity='Prescription', entity_id=rx.id,
        details={
            'medication': rx.medication,
            'quantity': rx.quantity,
            'totalAmount': rx.total_amount,
            'costAmount': cost_amount,
            'profit': rx.total_amount - cost_amount,
            'stockRemaining': med.current_stock,
        },
        request=request,
    )
    logger.info('Prescription fulfilled id=%s total=%s stock_remaining=%s',
                rx.id, rx.total_amount, med.current_stock)
    return rx


def cancel_prescription(prescription_id, *, user: User, request=None) -> Prescription:
    with transaction.atomic():
        rx = Prescription.objects.select_for_update().filter(pk=prescription_id).first()
        if rx is None:
            raise NotFound('Prescription not found')
        if rx.is_paid:
            raise AlreadyPaidError('Paid prescriptions cannot be cancelled.')
        rx.status = Prescription.STATUS_CANCELLED
        rx.save(update_fields=['status', 'updated_at'])
    log_action(user=user, action='CANCEL_PRESCRIPTION', entity='Prescription', entity_id=rx.id,
               details={'medication': rx.medication}, request=request)
    return rx


def list_prescriptions(*, status: Optional[str]=None, visit_id=None, search: Optional[str]=None):
    qs = Prescription.objects.select_related('visit__patient', 'prescribed_by', 'transaction')
    if status and status != 'All':
        qs = qs.filter(status=status)
    if visit_id:
        qs = qs.filter(visit_id=visit_id)
    if search:
        qs = qs.filter(
            Q(medication__icontains=search)
            | Q(visit__patient__first_name__icontains=search)
            | Q(visit__patient__last_name__icontains=search)
        )
    return qs.order_by('-created_at')


def batch_total(prescriptions: Iterable[Prescription]):
    return sum((p.total_amount or 0 for p in prescriptions), ledger.money(0))
