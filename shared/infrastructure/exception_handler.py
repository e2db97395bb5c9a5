"""
DRF exception handler

Renders every failure as {"reason", "detail", "retryable"} so clients can
branch on a stable reason code. Domain errors carry their own status
code; DRF's own exceptions keep theirs. Nothing internal leaks.
"""

import logging

from django.core.exceptions import PermissionDenied  # type: ignore
from django.http import Http404  # type: ignore
from rest_framework import exceptions  # type: ignore
from rest_framework.response import Response  # type: ignore
from rest_framework.views import exception_handler as drf_exception_handler  # type: ignore

from shared.domain.exceptions import DomainError, ServiceError

logger = logging.getLogger(__name__)


def domain_exception_handler(exc, context):
    if isinstance(exc, DomainError):
        view = context.get('view')
        log = logger.error if isinstance(exc, ServiceError) else logger.info
        log(f"{exc.__class__.__name__} in {view.__class__.__name__ if view else 'unknown view'}: "
            f"{exc.reason} - {exc.message}")
        return Response(exc.to_dict(), status=exc.status_code)

    if isinstance(exc, Http404):
        exc = exceptions.NotFound()
    elif isinstance(exc, PermissionDenied):
        exc = exceptions.PermissionDenied()

    response = drf_exception_handler(exc, context)
    if response is None:
        return None

    if isinstance(exc, exceptions.ValidationError):
        response.data = {
            'reason': 'invalid_request',
            'detail': 'Request is invalid.',
            'retryable': False,
            'errors': response.data,
        }
    elif isinstance(exc, exceptions.APIException):
        detail = response.data.get('detail', exc.detail) if isinstance(response.data, dict) else exc.detail
        response.data = {
            'reason': getattr(exc, 'default_code', 'error'),
            'detail': str(detail),
            'retryable': isinstance(exc, exceptions.Throttled),
        }
    return response
