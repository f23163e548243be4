"""
Domain errors and the unified API exception handler.

Service functions raise the :class:`ClinicError` subclasses below.  They
are DRF ``APIException`` instances so the views do not need to translate
them; the handler renders every error as
``{"ok": false, "error": {"code": ..., "message": ..., ...}}``.
"""
import logging

from rest_framework import status
from rest_framework.exceptions import APIException
from rest_framework.response import Response
from rest_framework.views import exception_handler as drf_exception_handler

logger = logging.getLogger(__name__)


class ClinicError(APIException):
    status_code = status.HTTP_400_BAD_REQUEST
    default_code = 'clinic_error'
    default_detail = 'The request could not be completed.'

    def __init__(self, detail=None, code=None, **extra):
        super().__init__(detail=detail, code=code)
        self.extra = extra


class MissingAnchorError(ClinicError):
    default_code = 'missing_anchor'
    default_detail = 'Either visitId or patientId is required.'


class InvalidVisitError(ClinicError):
    status_code = status.HTTP_404_NOT_FOUND
    default_code = 'invalid_visit'
    default_detail = 'Invalid visit ID.'

    def __init__(self, visit_id=None):
        super().__init__(visitId=str(visit_id) if visit_id else None)


class InvalidPatientError(ClinicError):
    status_code = status.HTTP_404_NOT_FOUND
    default_code = 'invalid_patient'
    default_detail = 'Patient not found or inactive.'

    def __init__(self, patient_id=None):
        super().__init__(patientId=str(patient_id) if patient_id else None)


class UnknownMedicationError(ClinicError):
    status_code = status.HTTP_404_NOT_FOUND
    default_code = 'unknown_medication'

    def __init__(self, name: str):
        self.medication = name
        super().__init__(f'Medication not found: {name}', medication=name)


class InsufficientStockError(ClinicError):
    status_code = status.HTTP_409_CONFLICT
    default_code = 'insufficient_stock'

    def __init__(self, name: str, available: int, requested: int):
        self.medication = name
        self.available = available
        self.requested = requested
        super().__init__(
            f'Insufficient stock for {name}. Available: {available}, Required: {requested}',
            medication=name,
            available=available,
            requested=requested,
        )


class AlreadyPaidError(ClinicError):
    status_code = status.HTTP_409_CONFLICT
    default_code = 'already_paid'
    default_detail = 'Prescription already fulfilled.'


class PrescriptionCancelledError(ClinicError):
    status_code = status.HTTP_409_CONFLICT
    default_code = 'prescription_cancelled'
    default_detail = 'Cannot fulfill cancelled prescription.'


def api_exception_handler(exc, context):
    resp = drf_exception_handler(exc, context)
    if resp is None:
        view = context.get('view')
        logger.exception('Unhandled error in %s', getattr(view, '__name__', view.__class__.__name__), exc_info=exc)
        return Response(
            {'ok': False, 'error': {'code': 'server_error', 'message': 'An unexpected error occurred'}},
            status=500,
        )
    if isinstance(exc, ClinicError):
        error = {'code': exc.default_code, 'message': str(exc.detail)}
        error.update({k: v for k, v in exc.extra.items() if v is not None})
        logger.info('Request rejected: %s', error)
        return Response({'ok': False, 'error': error}, status=resp.status_code)
    # normalize response
    detail = None
    if isinstance(resp.data, dict):
        detail = resp.data.get('detail') or resp.data
    else:
        detail = resp.data
    code = 'validation_error' if resp.status_code == status.HTTP_400_BAD_REQUEST else 'api_error'
    return Response({'ok': False, 'error': {'code': code, 'message': detail}}, status=resp.status_code)
