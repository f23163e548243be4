"""
Financial Ledger: transactions, expenses and the financial summary.

Ledger rows are append-only.  ``write_*`` helpers only insert and expect
to run inside the caller's transaction; the public ``record_*``
functions open their own atomic block and write the audit trail.
"""
import calendar
import datetime
import logging
from decimal import Decimal, ROUND_HALF_UP
from typing import Optional

from django.db import transaction
from django.db.models import DecimalField, F, Sum
from django.utils import timezone
from rest_framework.exceptions import ValidationError

from clinic.models import Expense, FinancialTransaction, MedicationStock, Patient, User
from clinic.services.audit import log_action

logger = logging.getLogger(__name__)

CENT = Decimal('0.01')
PERIODS = ('today', 'week', 'month', 'year')
INVENTORY_BUCKET = 'MEDICATION STOCK'


def money(value) -> Decimal:
    return Decimal(value).quantize(CENT, rounding=ROUND_HALF_UP)


def write_transaction(*, created_by: User, type: str, category: str, amount, description: str,
                      reference_type: str='', reference_id='', payment_method: str='',
                      patient: Optional[Patient]=None) -> FinancialTransaction:
    return FinancialTransaction.objects.create(
        type=type,
        category=category,
        amount=money(amount),
        description=description[:255],
        reference_type=reference_type,
        reference_id=str(reference_id) if reference_id else '',
        payment_method=payment_method or '',
        created_by=created_by,
        patient=patient,
    )


def write_expense(*, created_by: User, category: str, amount, description: str,
                  date: Optional[datetime.datetime]=None, vendor: str='', invoice_no: str='',
                  transaction_category: str=FinancialTransaction.CATEGORY_OPERATIONAL,
                  transaction_description: Optional[str]=None,
                  reference_type: Optional[str]=None, reference_id=None) -> Expense:
    """Insert an Expense and its matching EXPENSE transaction.

    Both rows carry the same amount.  The transaction points back at the
    expense unless an explicit reference is given (restocks reference the
    medication instead).
    """
    amount = money(amount)
    expense = Expense.objects.create(
        category=category,
        amount=amount,
        description=description[:255],
        vendor=vendor or '',
        invoice_no=invoice_no or '',
        date=date or timezone.now(),
        created_by=created_by,
    )
    write_transaction(
        created_by=created_by,
        type=FinancialTransaction.TYPE_EXPENSE,
        category=transaction_category,
        amount=amount,
        description=transaction_description or description,
        reference_type=reference_type or 'Expense',
        reference_id=reference_id or expense.id,
    )
    return expense


@transaction.atomic
def _record_expense(**kwargs) -> Expense:
    return write_expense(**kwargs)


def record_expense(*, user: User, category: str, amount, description: str,
                   date: Optional[datetime.datetime]=None, vendor: str='', invoice_no: str='',
                   request=None) -> Expense:
    if money(amount) <= 0:
        raise ValidationError({'amount': 'Amount must be positive'})
    expense = _record_expense(
        created_by=user, category=category, amount=amount, description=description,
        date=date, vendor=vendor, invoice_no=invoice_no,
    )
    log_action(user=user, action='CREATE_EXPENSE', entity='Expense', entity_id=expense.id,
               details={'category': category, 'amount': expense.amount}, request=request)
    logger.info('Expense created id=%s amount=%s', expense.id, expense.amount)
    return expense


def record_transaction(*, user: User, type: str, category: str, amount, description: str,
                       reference_type: str='', reference_id='', payment_method: str='',
                       patient: Optional[Patient]=None, request=None) -> FinancialTransaction:
    if money(amount) <= 0:
        raise ValidationError({'amount': 'Amount must be positive'})
    txn = write_transaction(
        created_by=user, type=type, category=category, amount=amount, description=description,
        reference_type=reference_type, reference_id=reference_id,
        payment_method=payment_method, patient=patient,
    )
    log_action(user=user, action='CREATE_TRANSACTION', entity='Transaction', entity_id=txn.id,
               details={'type': txn.type, 'amount': txn.amount}, request=request)
    logger.info('Transaction created id=%s type=%s amount=%s', txn.id, txn.type, txn.amount)
    return txn


def list_transactions(*, type: Optional[str]=None, category: Optional[str]=None, patient_id=None,
                      start: Optional[datetime.datetime]=None, end: Optional[datetime.datetime]=None):
    qs = FinancialTransaction.objects.select_related('created_by', 'patient')
    if type:
        qs = qs.filter(type=type)
    if category:
        qs = qs.filter(category=category)
    if patient_id:
        qs = qs.filter(patient_id=patient_id)
    if start:
        qs = qs.filter(created_at__gte=start)
    if end:
        qs = qs.filter(created_at__lte=end)
    return qs.order_by('-created_at')


def list_expenses(*, category: Optional[str]=None, start: Optional[datetime.datetime]=None,
                  end: Optional[datetime.datetime]=None):
    """Expenses newest first, with the total amount of every matching row."""
    qs = Expense.objects.select_related('created_by')
    if category:
        qs = qs.filter(category=category)
    if start:
        qs = qs.filter(date__gte=start)
    if end:
        qs = qs.filter(date__lte=end)
    total = money(qs.aggregate(total=Sum('amount'))['total'] or 0)
    return qs.order_by('-date', '-created_at'), total


def _months_back(moment: datetime.datetime, months: int) -> datetime.datetime:
    month_index = moment.month - 1 - months
    year = moment.year + month_index // 12
    month = month_index % 12 + 1
    day = min(moment.day, calendar.monthrange(year, month)[1])
    return moment.replace(year=year, month=month, day=day)


def period_start(period: str, now: Optional[datetime.datetime]=None) -> datetime.datetime:
    now = now or timezone.now()
    if period == 'today':
        return timezone.localtime(now).replace(hour=0, minute=0, second=0, microsecond=0)
    if period == 'week':
        return now - datetime.timedelta(days=7)
    if period == 'month':
        return _months_back(now, 1)
    if period == 'year':
        return _months_back(now, 12)
    raise ValidationError({'period': f'Unknown period: {period}'})


def inventory_value() -> Decimal:
    """Live holding cost of the Stock Ledger: sum of stock x cost price."""
    total = MedicationStock.objects.aggregate(
        total=Sum(F('current_stock') * F('cost_price'), output_field=DecimalField(max_digits=18, decimal_places=2)),
    )['total']
    return money(total or 0)


def financial_summary(period: str='month', *, now: Optional[datetime.datetime]=None) -> dict:
    """Revenue, expenses and profit since the start of ``period``.

    ``expenses`` deliberately mixes two things: operational Expense rows
    dated inside the window (realised cost) plus the current value of all
    stock on hand at cost price (unrealised holding cost, not windowed).
    Profit is therefore revenue minus both.  Restocks already appear as
    INVENTORY expenses, so stock bought and still on the shelf is counted
    twice; this matches the figures the finance screen has always shown.
    """
    start = period_start(period, now)

    sales = FinancialTransaction.objects.filter(type=FinancialTransaction.TYPE_SALE, created_at__gte=start)
    expenses = Expense.objects.filter(date__gte=start)

    total_revenue = money(sales.aggregate(total=Sum('amount'))['total'] or 0)
    operational = money(expenses.aggregate(total=Sum('amount'))['total'] or 0)
    holding = inventory_value()
    total_expenses = operational + holding
    profit = total_revenue - total_expenses

    revenue_by_category = [
        {'category': row['category'], 'total': money(row['total'] or 0)}
        for row in sales.values('category').annotate(total=Sum('amount')).order_by('category')
    ]
    expenses_by_category = [
        {'category': row['category'], 'total': money(row['total'] or 0)}
        for row in expenses.values('category').annotate(total=Sum('amount')).order_by('category')
    ]
    if holding > 0:
        expenses_by_category.append({'category': INVENTORY_BUCKET, 'total': holding})

    return {
        'period': period,
        'summary': {
            'revenue': total_revenue,
            'operationalExpenses': operational,
            'inventoryValue': holding,
            'expenses': total_expenses,
            'profit': profit,
            'profitMargin': money(profit / total_revenue * 100) if total_revenue > 0 else Decimal('0'),
        },
        'revenueByCategory': revenue_by_category,
        'expensesByCategory': expenses_by_category,
    }
