"""
URL mappings for the clinic API.

Trailing slashes are deliberately omitted; the desktop client calls the
paths exactly as listed here.
"""
from django.urls import path

from .views import finance, health, patients, pharmacy, prescriptions, visits

urlpatterns = [
    path('healthz', health.healthz, name='healthz'),
    # Prescriptions
    path('api/prescriptions', prescriptions.prescriptions, name='prescriptions'),
    path('api/prescriptions/<uuid:pk>/fulfill', prescriptions.fulfill_prescription, name='prescription-fulfill'),
    path('api/prescriptions/<uuid:pk>/cancel', prescriptions.cancel_prescription, name='prescription-cancel'),
    # Pharmacy
    path('api/pharmacy', pharmacy.medications, name='medications'),
    path('api/pharmacy/low-stock', pharmacy.low_stock, name='medications-low-stock'),
    path('api/pharmacy/categories', pharmacy.categories, name='medication-categories'),
    path('api/pharmacy/<uuid:pk>', pharmacy.medication_detail, name='medication-detail'),
    path('api/pharmacy/<uuid:pk>/stock', pharmacy.adjust_stock, name='medication-stock'),
    # Finance
    path('api/finance/summary', finance.summary, name='finance-summary'),
    path('api/finance/expenses', finance.expenses, name='finance-expenses'),
    path('api/finance/transactions', finance.transactions, name='finance-transactions'),
    # Patients
    path('api/patients', patients.patients, name='patients'),
    path('api/patients/<uuid:pk>', patients.patient_detail, name='patient-detail'),
    # Visits
    path('api/visits', visits.visits, name='visits'),
    path('api/visits/<uuid:pk>', visits.visit_detail, name='visit-detail'),
    path('api/visits/<uuid:pk>/diagnoses', visits.add_diagnosis, name='visit-diagnoses'),
]
