import datetime
from decimal import Decimal

import pytest
from django.utils import timezone
from rest_framework.exceptions import ValidationError

from clinic.models import Expense, FinancialTransaction
from clinic.services import inventory, ledger
from clinic.services import prescriptions as rx_service

pytestmark = pytest.mark.django_db


def test_record_expense_writes_expense_and_transaction(pharmacist):
    expense = ledger.record_expense(
        user=pharmacist, category='UTILITIES', amount=Decimal('50'), description='Electricity', vendor='ECG',
    )
    assert expense.amount == Decimal('50.00')
    txn = FinancialTransaction.objects.get()
    assert txn.type == FinancialTransaction.TYPE_EXPENSE
    assert txn.category == FinancialTransaction.CATEGORY_OPERATIONAL
    assert txn.amount == expense.amount
    assert txn.reference_type == 'Expense'
    assert txn.reference_id == str(expense.id)


def test_record_expense_rejects_non_positive_amount(pharmacist):
    with pytest.raises(ValidationError):
        ledger.record_expense(user=pharmacist, category='OTHER', amount=0, description='Nothing')
    assert Expense.objects.count() == 0
    assert FinancialTransaction.objects.count() == 0


def test_record_transaction(pharmacist, patient):
    txn = ledger.record_transaction(
        user=pharmacist, type=FinancialTransaction.TYPE_PAYMENT,
        category=FinancialTransaction.CATEGORY_CONSULTATION, amount='25.005',
        description='Consultation fee', payment_method='Cash', patient=patient,
    )
    assert txn.amount == Decimal('25.01')
    assert txn.patient_id == patient.id


def test_summary_mixes_operational_expenses_and_stock_value(doctor, pharmacist, patient, make_medication, rx_item):
    make_medication('Paracetamol', stock=100, price='0.50', cost='0.30')
    rx_service.fulfill_prescription_batch(user=doctor, patient_id=patient.id, items=[rx_item('Paracetamol', 4)])
    ledger.record_expense(user=pharmacist, category='UTILITIES', amount='50.00', description='Water')

    result = ledger.financial_summary('month')
    summary = result['summary']

    assert summary['revenue'] == Decimal('2.00')
    assert summary['operationalExpenses'] == Decimal('50.00')
    # 96 units left at 0.30
    assert summary['inventoryValue'] == Decimal('28.80')
    assert summary['expenses'] == Decimal('78.80')
    assert summary['profit'] == Decimal('-76.80')
    assert summary['profitMargin'] == Decimal('-3840.00')
    assert result['revenueByCategory'] == [{'category': 'PHARMACY', 'total': Decimal('2.00')}]
    assert {'category': 'UTILITIES', 'total': Decimal('50.00')} in result['expensesByCategory']
    assert {'category': ledger.INVENTORY_BUCKET, 'total': Decimal('28.80')} in result['expensesByCategory']


def test_summary_windows_expenses_by_date(pharmacist):
    old = timezone.now() - datetime.timedelta(days=60)
    ledger.record_expense(user=pharmacist, category='RENT', amount='300', description='Rent', date=old)

    assert ledger.financial_summary('month')['summary']['operationalExpenses'] == Decimal('0.00')
    assert ledger.financial_summary('year')['summary']['operationalExpenses'] == Decimal('300.00')


def test_summary_without_revenue_has_zero_margin(db):
    summary = ledger.financial_summary('today')['summary']
    assert summary['revenue'] == Decimal('0.00')
    assert summary['profitMargin'] == Decimal('0')
    assert ledger.financial_summary('week')['expensesByCategory'] == []


def test_unknown_period(db):
    with pytest.raises(ValidationError):
        ledger.financial_summary('decade')


def test_month_window_clamps_day():
    now = datetime.datetime(2025, 3, 31, 12, 0, tzinfo=datetime.timezone.utc)
    assert ledger.period_start('month', now) == datetime.datetime(2025, 2, 28, 12, 0, tzinfo=datetime.timezone.utc)
    assert ledger.period_start('year', now) == datetime.datetime(2024, 3, 31, 12, 0, tzinfo=datetime.timezone.utc)


def test_inventory_expense_counts_in_summary(pharmacist, make_medication):
    med = make_medication('Ibuprofen', stock=0, cost='1.00')
    inventory.adjust_stock(med.id, 10, 'add', user=pharmacist)

    summary = ledger.financial_summary('month')['summary']
    # the purchase is an expense and the same units are also held stock
    assert summary['operationalExpenses'] == Decimal('10.00')
    assert summary['inventoryValue'] == Decimal('10.00')
    assert summary['expenses'] == Decimal('20.00')


def test_inventory_value_sums_stock_at_cost(make_medication):
    assert ledger.inventory_value() == Decimal('0.00')
    make_medication('Ibuprofen', stock=3, cost='1.33')
    make_medication('Cetirizine', stock=7, cost='0.25')
    make_medication('Quinine', stock=0, cost='9.99')
    assert ledger.inventory_value() == Decimal('5.74')


def test_list_transactions_filters(pharmacist, patient):
    ledger.record_transaction(user=pharmacist, type='PAYMENT', category='CONSULTATION', amount='15',
                              description='Consultation', patient=patient)
    ledger.record_transaction(user=pharmacist, type='REFUND', category='PHARMACY', amount='4',
                              description='Returned syrup')

    assert ledger.list_transactions().count() == 2
    assert [t.type for t in ledger.list_transactions(type='PAYMENT')] == ['PAYMENT']
    assert [t.description for t in ledger.list_transactions(patient_id=patient.id)] == ['Consultation']
    later = timezone.now() + datetime.timedelta(minutes=1)
    assert not ledger.list_transactions(start=later).exists()


def test_list_expenses_returns_filtered_total(pharmacist):
    now = timezone.now()
    ledger.record_expense(user=pharmacist, category='RENT', amount='300', description='Rent',
                          date=now - datetime.timedelta(days=40))
    ledger.record_expense(user=pharmacist, category='UTILITIES', amount='40.50', description='Water', date=now)
    ledger.record_expense(user=pharmacist, category='UTILITIES', amount='9.50', description='Power', date=now)

    qs, total = ledger.list_expenses()
    assert qs.count() == 3
    assert total == Decimal('350.00')

    qs, total = ledger.list_expenses(category='UTILITIES')
    assert total == Decimal('50.00')

    qs, total = ledger.list_expenses(start=now - datetime.timedelta(days=7))
    assert sorted(e.description for e in qs) == ['Power', 'Water']
    assert total == Decimal('50.00')
