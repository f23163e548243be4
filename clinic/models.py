"""
Database models for the clinic backend.

These models capture the records the desktop client works with: staff
users, patients and their visits, the pharmacy stock ledger, the
financial ledger (transactions and expenses) and the audit trail.
Identifiers are UUIDs so that the front-end can treat every id as an
opaque string.
"""
from __future__ import annotations

import uuid
from decimal import Decimal

from django.contrib.auth.models import AbstractUser
from django.core.serializers.json import DjangoJSONEncoder
from django.db import models
from django.utils import timezone


class User(AbstractUser):
    """Staff member who can log in to the desktop client.

    Default accounts for each role come from ``seed_clinic``.  Permission
    classes in :mod:`clinic.permissions` gate the API by role.
    """
    ROLE_ADMIN = 'admin'
    ROLE_DOCTOR = 'doctor'
    ROLE_NURSE = 'nurse'
    ROLE_PHARMACIST = 'pharmacist'
    ROLE_RECEPTIONIST = 'receptionist'
    ROLE_CHOICES = [
        (ROLE_ADMIN, 'Admin'),
        (ROLE_DOCTOR, 'Doctor'),
        (ROLE_NURSE, 'Nurse'),
        (ROLE_PHARMACIST, 'Pharmacist'),
        (ROLE_RECEPTIONIST, 'Receptionist'),
    ]
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    role = models.CharField(max_length=20, choices=ROLE_CHOICES, default=ROLE_RECEPTIONIST)
    phone_number = models.CharField(max_length=32, blank=True)

    def __str__(self) -> str:
        return f"{self.username} ({self.role})"


class Patient(models.Model):
    """Patient demographics.

    Patients are never hard-deleted while visits reference them; the
    ``is_active`` flag is cleared instead.
    """
    GENDER_CHOICES = [
        ('Male', 'Male'),
        ('Female', 'Female'),
        ('Other', 'Other'),
    ]
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    first_name = models.CharField(max_length=100)
    last_name = models.CharField(max_length=100)
    date_of_birth = models.DateField()
    gender = models.CharField(max_length=10, choices=GENDER_CHOICES)
    phone_number = models.CharField(max_length=32, db_index=True)
    address = models.TextField(blank=True)
    is_active = models.BooleanField(default=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self) -> str:
        return f"{self.first_name} {self.last_name}"

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}".strip()


class Visit(models.Model):
    """One clinical encounter, the anchor for prescriptions and diagnoses."""
    STATUS_IN_PROGRESS = 'In Progress'
    STATUS_COMPLETED = 'Completed'
    STATUS_CANCELLED = 'Cancelled'
    STATUS_CHOICES = [
        (STATUS_IN_PROGRESS, 'In Progress'),
        (STATUS_COMPLETED, 'Completed'),
        (STATUS_CANCELLED, 'Cancelled'),
    ]
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    patient = models.ForeignKey(Patient, on_delete=models.PROTECT, related_name='visits')
    doctor = models.ForeignKey(User, on_delete=models.PROTECT, related_name='visits')
    visit_date = models.DateTimeField(default=timezone.now)
    chief_complaint = models.CharField(max_length=255)
    vital_signs = models.JSONField(blank=True, null=True)
    notes = models.TextField(blank=True)
    status = models.CharField(max_length=20, choices=STATUS_CHOICES, default=STATUS_IN_PROGRESS)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        indexes = [
            models.Index(fields=['visit_date'], name='clinic_visit_date_idx'),
        ]

    def __str__(self) -> str:
        return f"visit {self.id} p={self.patient_id}"


class Diagnosis(models.Model):
    visit = models.ForeignKey(Visit, on_delete=models.CASCADE, related_name='diagnoses')
    icd_code = models.CharField(max_length=20, blank=True)
    description = models.CharField(max_length=255)
    notes = models.TextField(blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        verbose_name_plural = 'diagnoses'

    def __str__(self) -> str:
        return f"{self.icd_code or '-'} {self.description}"


class MedicationStock(models.Model):
    """A Stock Ledger entry: one medication with its quantity and prices.

    ``current_stock`` only changes through :mod:`clinic.services.inventory`
    (restock/subtract) and prescription fulfillment.  The database check
    constraint backs up the service-level rule that it never goes
    negative.
    """
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    medication_name = models.CharField(max_length=255, unique=True)
    description = models.TextField(blank=True)
    category = models.CharField(max_length=100, blank=True, db_index=True)
    current_stock = models.IntegerField(default=0)
    minimum_stock = models.IntegerField(default=10)
    cost_price = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal('0.00'))
    selling_price = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal('0.00'))
    expiry_date = models.DateField(blank=True, null=True)
    supplier = models.CharField(max_length=255, blank=True)
    batch_number = models.CharField(max_length=64, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        constraints = [
            models.CheckConstraint(
                condition=models.Q(current_stock__gte=0),
                name='medication_stock_non_negative',
            ),
        ]

    def __str__(self) -> str:
        return f"{self.medication_name} ({self.current_stock})"

    @property
    def is_low(self) -> bool:
        return self.current_stock <= self.minimum_stock


class FinancialTransaction(models.Model):
    """Immutable financial ledger entry."""
    TYPE_SALE = 'SALE'
    TYPE_EXPENSE = 'EXPENSE'
    TYPE_PAYMENT = 'PAYMENT'
    TYPE_REFUND = 'REFUND'
    TYPE_CHOICES = [
        (TYPE_SALE, 'Sale'),
        (TYPE_EXPENSE, 'Expense'),
        (TYPE_PAYMENT, 'Payment'),
        (TYPE_REFUND, 'Refund'),
    ]

    CATEGORY_PHARMACY = 'PHARMACY'
    CATEGORY_CONSULTATION = 'CONSULTATION'
    CATEGORY_LAB = 'LAB'
    CATEGORY_OPERATIONAL = 'OPERATIONAL'
    CATEGORY_INVENTORY = 'INVENTORY'
    CATEGORY_OTHER = 'OTHER'
    CATEGORY_CHOICES = [
        (CATEGORY_PHARMACY, 'Pharmacy'),
        (CATEGORY_CONSULTATION, 'Consultation'),
        (CATEGORY_LAB, 'Lab'),
        (CATEGORY_OPERATIONAL, 'Operational'),
        (CATEGORY_INVENTORY, 'Inventory'),
        (CATEGORY_OTHER, 'Other'),
    ]

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    type = models.CharField(max_length=16, choices=TYPE_CHOICES, db_index=True)
    category = models.CharField(max_length=32, choices=CATEGORY_CHOICES, db_index=True)
    amount = models.DecimalField(max_digits=12, decimal_places=2)
    description = models.CharField(max_length=255)
    reference_type = models.CharField(max_length=64, blank=True)
    reference_id = models.CharField(max_length=64, blank=True)
    payment_method = models.CharField(max_length=32, blank=True)
    created_by = models.ForeignKey(User, on_delete=models.PROTECT, related_name='transactions')
    patient = models.ForeignKey(
        Patient, null=True, blank=True, on_delete=models.SET_NULL, related_name='transactions'
    )
    created_at = models.DateTimeField(auto_now_add=True, db_index=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = 'clinic_transaction'
        indexes = [
            models.Index(fields=['type', 'created_at'], name='clinic_txn_type_created_idx'),
        ]

    def __str__(self) -> str:
        return f"{self.type}/{self.category} {self.amount}"


class Expense(models.Model):
    """Operational cost.  Always written alongside an EXPENSE transaction."""
    CATEGORY_CHOICES = [
        ('INVENTORY', 'Inventory'),
        ('SALARIES', 'Salaries'),
        ('UTILITIES', 'Utilities'),
        ('RENT', 'Rent'),
        ('EQUIPMENT', 'Equipment'),
        ('MAINTENANCE', 'Maintenance'),
        ('SUPPLIES', 'Supplies'),
        ('OTHER', 'Other'),
    ]
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    category = models.CharField(max_length=32, choices=CATEGORY_CHOICES, db_index=True)
    amount = models.DecimalField(max_digits=12, decimal_places=2)
    description = models.CharField(max_length=255)
    vendor = models.CharField(max_length=255, blank=True)
    invoice_no = models.CharField(max_length=64, blank=True)
    date = models.DateTimeField(db_index=True)
    created_by = models.ForeignKey(User, on_delete=models.PROTECT, related_name='expenses')
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self) -> str:
        return f"{self.category} {self.amount}"


class Prescription(models.Model):
    """One medication line within a visit."""
    STATUS_ACTIVE = 'Active'
    STATUS_COMPLETED = 'Completed'
    STATUS_CANCELLED = 'Cancelled'
    STATUS_CHOICES = [
        (STATUS_ACTIVE, 'Active'),
        (STATUS_COMPLETED, 'Completed'),
        (STATUS_CANCELLED, 'Cancelled'),
    ]

    PAYMENT_PENDING = 'Pending'
    PAYMENT_PAID = 'Paid'
    PAYMENT_CHOICES = [
        (PAYMENT_PENDING, 'Pending'),
        (PAYMENT_PAID, 'Paid'),
    ]

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    visit = models.ForeignKey(Visit, on_delete=models.CASCADE, related_name='prescriptions')
    prescribed_by = models.ForeignKey(User, on_delete=models.PROTECT, related_name='prescriptions')
    medication = models.CharField(max_length=255)
    dosage = models.CharField(max_length=100)
    frequency = models.CharField(max_length=100)
    duration = models.CharField(max_length=100)
    quantity = models.PositiveIntegerField()
    instructions = models.TextField(blank=True)
    status = models.CharField(max_length=16, choices=STATUS_CHOICES, default=STATUS_ACTIVE)
    total_amount = models.DecimalField(max_digits=12, decimal_places=2, blank=True, null=True)
    payment_status = models.CharField(
        max_length=16, choices=PAYMENT_CHOICES, default=PAYMENT_PENDING, db_index=True
    )
    paid_at = models.DateTimeField(blank=True, null=True)
    transaction = models.OneToOneField(
        FinancialTransaction,
        null=True,
        blank=True,
        on_delete=models.PROTECT,
        related_name='prescription',
    )
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self) -> str:
        return f"{self.medication} x{self.quantity} ({self.payment_status})"

    @property
    def is_paid(self) -> bool:
        return self.payment_status == self.PAYMENT_PAID


class AuditLog(models.Model):
    user = models.ForeignKey(User, on_delete=models.SET_NULL, null=True, blank=True)
    action = models.CharField(max_length=64)
    entity = models.CharField(max_length=64)
    entity_id = models.CharField(max_length=64, blank=True, null=True)
    details = models.JSONField(default=dict, blank=True, encoder=DjangoJSONEncoder)
    ip_address = models.GenericIPAddressField(blank=True, null=True)
    user_agent = models.CharField(max_length=255, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        indexes = [
            models.Index(fields=['action', 'created_at'], name='clinic_audit_action_idx'),
            models.Index(fields=['entity', 'entity_id', 'created_at'], name='clinic_audit_entity_idx'),
        ]

    def __str__(self):
        return f"{self.action}:{self.entity}/{self.entity_id}@{self.created_at:%F %T}"
