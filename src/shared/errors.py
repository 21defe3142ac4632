class ServiceError(Exception):
    """
    Base class for every error a handler turns into an HTTP response.

    status_code and code classify the failure; message is safe to show the
    caller and detail (optional) carries debugging context.
    """
    status_code = 500
    code = 'internal'

    def __init__(self, message, detail=None, status_code=None, **extra):
        super().__init__(message)
        self.message = message
        self.detail = detail
        self.extra = extra
        if status_code is not None:
            self.status_code = status_code

    def to_body(self):
        body = {"error": self.message, "code": self.code}
        if self.detail:
            body["detail"] = self.detail
        body.update(self.extra)
        return body


class InvalidArgument(ServiceError):
    status_code = 400
    code = 'invalid_argument'


class Unauthenticated(ServiceError):
    status_code = 401
    code = 'unauthenticated'


class PermissionDenied(ServiceError):
    status_code = 403
    code = 'permission_denied'


class NotFound(ServiceError):
    status_code = 404
    code = 'not_found'


class FailedPrecondition(ServiceError):
    status_code = 400
    code = 'failed_precondition'


class ConfigurationError(ServiceError):
    """A required operator-provided setting is missing. Never a caller problem."""
    status_code = 500
    code = 'configuration_error'


class Internal(ServiceError):
    status_code = 500
    code = 'internal'


class MethodNotAllowed(ServiceError):
    status_code = 405
    code = 'method_not_allowed'
