from rest_framework.views import exception_handler as drf_exception_handler
from rest_framework.response import Response
from rest_framework import exceptions


class ServiceError(Exception):
    """Domain error raised by ``core.services``; rendered by the API handler."""
    status_code = 400
    code = 'invalid'

    def __init__(self, message: str, **extra):
        super().__init__(message)
        self.message = message
        self.extra = extra


class InvalidInput(ServiceError):
    status_code = 400
    code = 'invalid'


class InvalidParameter(InvalidInput):
    """Malformed query-string value."""
    code = 'validation_error'


class Forbidden(ServiceError):
    status_code = 403
    code = 'forbidden'


class NotFound(ServiceError):
    status_code = 404
    code = 'not_found'


class Conflict(ServiceError):
    status_code = 409
    code = 'conflict'


def api_exception_handler(exc, context):
    if isinstance(exc, ServiceError):
        body = {'ok': False, 'error': {'code': exc.code, 'message': exc.message}}
        body.update(exc.extra)
        return Response(body, status=exc.status_code)
    resp = drf_exception_handler(exc, context)
    if resp is None:
        return Response({'ok': False, 'error': {'code': 'server_error', 'message': str(exc)}}, status=500)
    # normalize response
    if isinstance(exc, exceptions.ValidationError):
        code = 'validation_error'
    else:
        code = getattr(exc, 'default_code', None) or 'api_error'
    if isinstance(resp.data, dict):
        detail = resp.data.get('detail') or resp.data
    else:
        detail = resp.data
    headers = {h: resp[h] for h in ('WWW-Authenticate', 'Retry-After') if resp.has_header(h)}
    return Response({'ok': False, 'error': {'code': code, 'message': detail}}, status=resp.status_code, headers=headers)
