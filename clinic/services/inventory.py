"""
Stock Ledger operations.

Every change to ``MedicationStock.current_stock`` goes through this
module.  Rows are locked with ``select_for_update`` and decrements are
issued as guarded ``UPDATE ... WHERE current_stock >= qty`` statements,
so two concurrent callers can never both take the last units (SQLite
ignores the row lock; the guard still holds there).
"""
import datetime
import logging
from decimal import Decimal
from typing import List, Optional

from django.db import transaction
from django.db.models import F, Q
from django.utils import timezone
from rest_framework.exceptions import NotFound, ValidationError

from clinic.exceptions import InsufficientStockError, UnknownMedicationError
from clinic.models import FinancialTransaction, MedicationStock, User
from clinic.services import ledger
from clinic.services.audit import log_action

logger = logging.getLogger(__name__)

DIRECTION_ADD = 'add'
DIRECTION_SUBTRACT = 'subtract'
DIRECTIONS = (DIRECTION_ADD, DIRECTION_SUBTRACT)

# Fields that may be edited directly; stock only moves via adjust/fulfill.
EDITABLE_FIELDS = (
    'medication_name', 'description', 'category', 'minimum_stock',
    'cost_price', 'selling_price', 'expiry_date', 'supplier', 'batch_number',
)


def lock_medication(name: str) -> MedicationStock:
    """Fetch and row-lock the Stock Ledger entry for an exact medication name."""
    med = MedicationStock.objects.select_for_update().filter(medication_name=name).first()
    if med is None:
        raise UnknownMedicationError(name)
    return med


def deduct_stock(med: MedicationStock, quantity: int) -> MedicationStock:
    if med.current_stock < quantity:
        raise InsufficientStockError(med.medication_name, med.current_stock, quantity)
    updated = MedicationStock.objects.filter(pk=med.pk, current_stock__gte=quantity).update(
        current_stock=F('current_stock') - quantity,
        updated_at=timezone.now(),
    )
    med.refresh_from_db(fields=['current_stock', 'updated_at'])
    if not updated:
        # Another caller took the stock between our read and the update.
        raise InsufficientStockError(med.medication_name, med.current_stock, quantity)
    return med


def _add_stock(med: MedicationStock, quantity: int, new_cost, new_expiry) -> MedicationStock:
    changes = {'current_stock': F('current_stock') + quantity, 'updated_at': timezone.now()}
    if new_cost is not None:
        changes['cost_price'] = ledger.money(new_cost)
    if new_expiry is not None:
        changes['expiry_date'] = new_expiry
    MedicationStock.objects.filter(pk=med.pk).update(**changes)
    med.refresh_from_db()
    return med


def adjust_stock(medication_id, quantity: int, direction: str, *, user: User,
                 new_cost: Optional[Decimal]=None, new_expiry: Optional[datetime.date]=None,
                 request=None) -> MedicationStock:
    """Restock (``add``) or write off (``subtract``) a medication.

    A restock with a positive cost also books the purchase: one INVENTORY
    Expense and one EXPENSE/PHARMACY transaction for
    ``quantity * (new_cost or cost_price)``.  ``new_cost`` and
    ``new_expiry`` only apply on ``add`` and only affect the future.
    """
    if direction not in DIRECTIONS:
        raise ValidationError({'type': f'Must be one of {", ".join(DIRECTIONS)}'})
    if not isinstance(quantity, int) or isinstance(quantity, bool) or quantity <= 0:
        raise ValidationError({'quantity': 'Quantity must be a positive integer'})

    with transaction.atomic():
        med = MedicationStock.objects.select_for_update().filter(pk=medication_id).first()
        if med is None:
            raise NotFound('Medication not found')
        previous = med.current_stock
        previous_cost = med.cost_price
        expense = None

        if direction == DIRECTION_SUBTRACT:
            deduct_stock(med, quantity)
        else:
            _add_stock(med, quantity, new_cost, new_expiry)
            unit_cost = ledger.money(new_cost) if new_cost else previous_cost
            total_cost = ledger.money(unit_cost * quantity)
            if total_cost > 0:
                expense = ledger.write_expense(
                    created_by=user,
                    category='INVENTORY',
                    amount=total_cost,
                    description=f'Restock: {med.medication_name} ({quantity} units @ {unit_cost})',
                    transaction_category=FinancialTransaction.CATEGORY_PHARMACY,
                    transaction_description=f'Inventory purchase: {med.medication_name}',
                    reference_type='MedicationStock',
                    reference_id=med.id,
                )

    log_action(
        user=user, action='ADJUST_STOCK', entity='MedicationStock', entity_id=med.id,
        details={
            'medicationName': med.medication_name,
            'type': direction,
            'quantity': quantity,
            'previousStock': previous,
            'newStock': med.current_stock,
            'newCost': new_cost if new_cost is not None else 'N/A',
            'newExpiry': new_expiry if new_expiry is not None else 'N/A',
            'expenseId': expense.id if expense else None,
        },
        request=request,
    )
    logger.info('Stock adjusted medication=%s type=%s quantity=%s stock=%s->%s',
                med.id, direction, quantity, previous, med.current_stock)
    return med


def create_medication(*, user: User, medication_name: str, cost_price, selling_price,
                      current_stock: int=0, minimum_stock: int=10, request=None, **extra) -> MedicationStock:
    if MedicationStock.objects.filter(medication_name=medication_name).exists():
        raise ValidationError({'medicationName': 'A medication with this name already exists'})
    if current_stock < 0:
        raise ValidationError({'currentStock': 'Stock cannot be negative'})
    unknown = set(extra) - set(EDITABLE_FIELDS)
    if unknown:
        raise ValidationError({k: 'Unknown field' for k in unknown})
    med = MedicationStock.objects.create(
        medication_name=medication_name,
        cost_price=ledger.money(cost_price),
        selling_price=ledger.money(selling_price),
        current_stock=current_stock,
        minimum_stock=minimum_stock,
        **extra,
    )
    log_action(user=user, action='CREATE_MEDICATION', entity='MedicationStock', entity_id=med.id,
               details={'medicationName': med.medication_name}, request=request)
    return med


def update_medication(medication_id, *, user: User, request=None, **changes) -> MedicationStock:
    """Edit descriptive and pricing fields.

    Price changes only affect future fulfillments; paid prescriptions keep
    the amount that was charged.
    """
    unknown = set(changes) - set(EDITABLE_FIELDS)
    if unknown:
        raise ValidationError({k: 'Field cannot be updated here' for k in unknown})
    with transaction.atomic():
        med = MedicationStock.objects.select_for_update().filter(pk=medication_id).first()
        if med is None:
            raise NotFound('Medication not found')
        name = changes.get('medication_name')
        if name and name != med.medication_name and \
                MedicationStock.objects.filter(medication_name=name).exclude(pk=med.pk).exists():
            raise ValidationError({'medicationName': 'A medication with this name already exists'})
        for field, value in changes.items():
            if field in ('cost_price', 'selling_price'):
                value = ledger.money(value)
            setattr(med, field, value)
        med.save(update_fields=list(changes) + ['updated_at'])
    log_action(user=user, action='UPDATE_MEDICATION', entity='MedicationStock', entity_id=med.id,
               details={'changes': changes}, request=request)
    return med


def get_medication(medication_id) -> MedicationStock:
    med = MedicationStock.objects.filter(pk=medication_id).first()
    if med is None:
        raise NotFound('Medication not found')
    return med


def low_stock_alerts():
    return MedicationStock.objects.filter(current_stock__lte=F('minimum_stock')).order_by('current_stock', 'medication_name')


def medication_categories() -> List[str]:
    rows = MedicationStock.objects.exclude(category='').values_list('category', flat=True).distinct()
    return sorted(set(rows))


def list_medications(*, search: Optional[str]=None, category: Optional[str]=None, status: Optional[str]=None):
    qs = MedicationStock.objects.all()
    if search:
        qs = qs.filter(Q(medication_name__icontains=search) | Q(category__icontains=search) | Q(description__icontains=search))
    if category and category != 'All':
        qs = qs.filter(category=category)
    today = timezone.localdate()
    if status == 'expired':
        qs = qs.filter(expiry_date__lt=today)
    elif status == 'out_of_stock':
        qs = qs.filter(current_stock=0)
    elif status == 'low_stock':
        qs = qs.filter(current_stock__lte=F('minimum_stock'), current_stock__gt=0)
    elif status == 'available':
        qs = qs.filter(current_stock__gt=0).filter(Q(expiry_date__gt=today) | Q(expiry_date__isnull=True))
    return qs.order_by('medication_name')
