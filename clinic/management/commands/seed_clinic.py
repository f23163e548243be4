"""
Seed default staff accounts and a starter pharmacy stock (idempotent).

Existing users keep their passwords unless ``--reset-passwords`` is
given; existing medications are left untouched so re-running never
moves stock.
"""
from decimal import Decimal

from django.contrib.auth.hashers import make_password
from django.core.management.base import BaseCommand
from django.db import transaction
from rest_framework.authtoken.models import Token

from clinic.models import MedicationStock, User

STAFF = [
    # username, role, first name, last name, password
    ("admin", User.ROLE_ADMIN, "System", "Administrator", "Admin@123"),
    ("doctor", User.ROLE_DOCTOR, "John", "Smith", "Doctor@123"),
    ("pharmacist", User.ROLE_PHARMACIST, "Grace", "Mensah", "Pharma@123"),
    ("nurse", User.ROLE_NURSE, "Efua", "Asante", "Nurse@123"),
    ("reception", User.ROLE_RECEPTIONIST, "Yaw", "Darko", "Front@123"),
]

MEDICATIONS = [
    ("Paracetamol 500mg", "Pain reliever and fever reducer", "Painkiller", 500, 100, "0.30", "0.50"),
    ("Amoxicillin 250mg", "Antibiotic for bacterial infections", "Antibiotic", 300, 50, "1.50", "2.50"),
    ("Ibuprofen 400mg", "Anti-inflammatory and pain reliever", "Painkiller", 400, 80, "0.45", "0.75"),
    ("Omeprazole 20mg", "Proton pump inhibitor for acid reflux", "Gastrointestinal", 200, 40, "0.70", "1.20"),
]


class Command(BaseCommand):
    help = "Create default staff users (with API tokens) and sample medications."

    def add_arguments(self, parser):
        parser.add_argument("--reset-passwords", action="store_true",
                            help="Reset existing staff passwords to the defaults.")

    @transaction.atomic
    def handle(self, *args, **opts):
        for username, role, first, last, password in STAFF:
            u, created = User.objects.get_or_create(
                username=username,
                defaults={
                    "role": role,
                    "first_name": first,
                    "last_name": last,
                    "password": make_password(password),
                    "is_active": True,
                    "is_staff": role == User.ROLE_ADMIN,
                    "is_superuser": role == User.ROLE_ADMIN,
                },
            )
            if not created and opts["reset_passwords"]:
                u.password = make_password(password)
                u.is_active = True
                u.save(update_fields=["password", "is_active"])
            token, _ = Token.objects.get_or_create(user=u)
            state = "created" if created else "exists"
            self.stdout.write(self.style.SUCCESS(f"{state}: {username} ({u.role}) token={token.key}"))

        added = 0
        for name, description, category, stock, minimum, cost, price in MEDICATIONS:
            _, created = MedicationStock.objects.get_or_create(
                medication_name=name,
                defaults={
                    "description": description,
                    "category": category,
                    "current_stock": stock,
                    "minimum_stock": minimum,
                    "cost_price": Decimal(cost),
                    "selling_price": Decimal(price),
                },
            )
            added += int(created)
        self.stdout.write(self.style.SUCCESS(f"Medications: {added} added, {len(MEDICATIONS) - added} already present."))
        self.stdout.write(self.style.WARNING("Change the default passwords before using this install for real patients."))
