import datetime
from decimal import Decimal

import pytest

from clinic.models import MedicationStock, Patient, User, Visit


def make_user(username, role):
    return User.objects.create_user(username=username, password='P@ssw0rd1', role=role)


@pytest.fixture
def doctor(db):
    return make_user('doctor1', User.ROLE_DOCTOR)


@pytest.fixture
def pharmacist(db):
    return make_user('pharma1', User.ROLE_PHARMACIST)


@pytest.fixture
def receptionist(db):
    return make_user('front1', User.ROLE_RECEPTIONIST)


@pytest.fixture
def patient(db):
    return Patient.objects.create(
        first_name='Ama',
        last_name='Owusu',
        date_of_birth=datetime.date(1990, 5, 17),
        gender='Female',
        phone_number='0244000001',
    )


@pytest.fixture
def visit(patient, doctor):
    return Visit.objects.create(patient=patient, doctor=doctor, chief_complaint='Headache')


@pytest.fixture
def make_medication(db):
    def _make(name, stock=10, price='0.50', cost='0.30', minimum=10, **extra):
        return MedicationStock.objects.create(
            medication_name=name,
            current_stock=stock,
            minimum_stock=minimum,
            selling_price=Decimal(price),
            cost_price=Decimal(cost),
            **extra,
        )
    return _make


@pytest.fixture
def rx_item():
    def _item(name, quantity, **extra):
        item = {
            'medication': name,
            'dosage': '1 tablet',
            'frequency': 'Three times daily',
            'duration': '5 days',
            'quantity': quantity,
        }
        item.update(extra)
        return item
    return _item
