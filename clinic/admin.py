"""
Django admin registrations for the clinic models.

Administrators use the admin site to manage staff accounts, issue API
tokens and inspect ledger rows.  Ledger and audit rows are shown read
only; they are append-only by contract.
"""

from django.contrib import admin
from django.contrib.auth.admin import UserAdmin as BaseUserAdmin

from .models import (
    AuditLog,
    Diagnosis,
    Expense,
    FinancialTransaction,
    MedicationStock,
    Patient,
    Prescription,
    User,
    Visit,
)


@admin.register(User)
class UserAdmin(BaseUserAdmin):
    list_display = ('username', 'first_name', 'last_name', 'role', 'is_active', 'is_staff')
    list_filter = ('role', 'is_active')
    fieldsets = BaseUserAdmin.fieldsets + (('Clinic', {'fields': ('role', 'phone_number')}),)


@admin.register(Patient)
class PatientAdmin(admin.ModelAdmin):
    list_display = ('first_name', 'last_name', 'gender', 'date_of_birth', 'phone_number', 'is_active')
    list_filter = ('gender', 'is_active')
    search_fields = ('first_name', 'last_name', 'phone_number')


@admin.register(Visit)
class VisitAdmin(admin.ModelAdmin):
    list_display = ('patient', 'doctor', 'visit_date', 'chief_complaint', 'status')
    list_filter = ('status',)
    search_fields = ('patient__first_name', 'patient__last_name', 'chief_complaint')


@admin.register(Diagnosis)
class DiagnosisAdmin(admin.ModelAdmin):
    list_display = ('visit', 'icd_code', 'description')
    search_fields = ('icd_code', 'description')


@admin.register(MedicationStock)
class MedicationStockAdmin(admin.ModelAdmin):
    list_display = ('medication_name', 'category', 'current_stock', 'minimum_stock', 'selling_price', 'expiry_date')
    list_filter = ('category',)
    search_fields = ('medication_name', 'supplier', 'batch_number')
    # stock moves only through restock/fulfillment
    readonly_fields = ('current_stock',)


@admin.register(Prescription)
class PrescriptionAdmin(admin.ModelAdmin):
    list_display = ('medication', 'quantity', 'visit', 'status', 'payment_status', 'total_amount', 'paid_at')
    list_filter = ('status', 'payment_status')
    search_fields = ('medication',)


class ReadOnlyAdmin(admin.ModelAdmin):
    def has_change_permission(self, request, obj=None):
        return False

    def has_delete_permission(self, request, obj=None):
        return False


@admin.register(FinancialTransaction)
class FinancialTransactionAdmin(ReadOnlyAdmin):
    list_display = ('type', 'category', 'amount', 'description', 'payment_method', 'created_at')
    list_filter = ('type', 'category')
    search_fields = ('description', 'reference_id')


@admin.register(Expense)
class ExpenseAdmin(ReadOnlyAdmin):
    list_display = ('category', 'amount', 'description', 'vendor', 'date')
    list_filter = ('category',)


@admin.register(AuditLog)
class AuditLogAdmin(ReadOnlyAdmin):
    list_display = ('action', 'entity', 'entity_id', 'user', 'ip_address', 'created_at')
    list_filter = ('action', 'entity')
    search_fields = ('entity_id',)
