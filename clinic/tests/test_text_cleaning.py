import pytest

from clinic.serializers.common import plain_text
from clinic.serializers.pharmacy import MedicationWriteSerializer
from clinic.serializers.prescription import PrescriptionItemSerializer


@pytest.mark.parametrize('raw, expected', [
    ('Amoxicillin & Clavulanate', 'Amoxicillin & Clavulanate'),
    ('<b>After meals</b>', 'After meals'),
    ('Dose < 10 mg', 'Dose < 10 mg'),
    ('  padded  ', 'padded'),
    (None, ''),
])
def test_plain_text(raw, expected):
    assert plain_text(raw) == expected


def test_medication_name_is_cleaned_the_same_on_create_and_prescribe():
    name = 'Co-trimoxazole <i>480mg</i> & Folic acid'
    med = MedicationWriteSerializer(data={'medicationName': name, 'costPrice': '1.00', 'sellingPrice': '2.00'})
    item = PrescriptionItemSerializer(data={
        'medication': name, 'dosage': '1 tablet', 'frequency': 'Daily', 'duration': '3 days', 'quantity': 1,
    })
    assert med.is_valid(), med.errors
    assert item.is_valid(), item.errors
    assert med.validated_data['medicationName'] == item.validated_data['medication'] == \
        'Co-trimoxazole 480mg & Folic acid'


def test_markup_only_medication_is_rejected():
    item = PrescriptionItemSerializer(data={
        'medication': '<b></b>', 'dosage': '1 tablet', 'frequency': 'Daily', 'duration': '3 days', 'quantity': 1,
    })
    assert not item.is_valid()
    assert 'medication' in item.errors
