import pytest
from django.core.management import call_command
from rest_framework.authtoken.models import Token

from clinic.models import MedicationStock, User

pytestmark = pytest.mark.django_db


def test_seed_is_idempotent():
    call_command('seed_clinic')
    MedicationStock.objects.filter(medication_name='Paracetamol 500mg').update(current_stock=7)
    call_command('seed_clinic')

    assert User.objects.count() == 5
    assert set(User.objects.values_list('role', flat=True)) == {r for r, _ in User.ROLE_CHOICES}
    assert Token.objects.count() == 5
    assert MedicationStock.objects.count() == 4
    # re-seeding never moves stock
    assert MedicationStock.objects.get(medication_name='Paracetamol 500mg').current_stock == 7
    assert User.objects.get(username='admin').is_superuser
