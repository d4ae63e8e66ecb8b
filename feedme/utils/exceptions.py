class ServiceError(Exception):
    status = 400

    def __init__(self, code="SERVICE_ERROR", message="Service error", details=None, status=None):
        self.code = code
        self.message = message
        self.details = details or {}
        if status is not None:
            self.status = status
        super().__init__(message)


class Unauthorized(ServiceError):
    status = 401

    def __init__(self, message="Unauthorized", details=None):
        super().__init__("UNAUTHORIZED", message, details)


class Forbidden(ServiceError):
    status = 403

    def __init__(self, message="Forbidden", details=None):
        super().__init__("FORBIDDEN", message, details)


class NotFound(ServiceError):
    status = 404

    def __init__(self, message="Resource not found", details=None):
        super().__init__("NOT_FOUND", message, details)


class InvalidInput(ServiceError):
    status = 400

    def __init__(self, message="Invalid input", details=None):
        super().__init__("INVALID_INPUT", message, details)


class Conflict(ServiceError):
    status = 409

    def __init__(self, message="Conflict", details=None):
        super().__init__("CONFLICT", message, details)


class UpstreamFailure(ServiceError):
    status = 500

    def __init__(self, message="Upstream failure", details=None, code="UPSTREAM_FAILURE"):
        super().__init__(code, message, details)


class InvalidSignature(ServiceError):
    status = 400

    def __init__(self, message="Invalid signature"):
        super().__init__("INVALID_SIGNATURE", message)


# invitations

class InvalidCode(ServiceError):
    status = 404

    def __init__(self, message="Invalid or expired invitation code"):
        super().__init__("INVALID_CODE", message)


class Expired(ServiceError):
    status = 400

    def __init__(self, message="Invitation has expired"):
        super().__init__("EXPIRED", message)


class MaxUsesReached(ServiceError):
    status = 400

    def __init__(self, message="Invitation has reached maximum uses"):
        super().__init__("MAX_USES_REACHED", message)


class AlreadyRedeemed(ServiceError):
    status = 400

    def __init__(self, message="You have already used this invitation"):
        super().__init__("ALREADY_REDEEMED", message)


class CodeGenerationExhausted(ServiceError):
    status = 500

    def __init__(self, message="Failed to generate unique invite code"):
        super().__init__("CODE_GENERATION_EXHAUSTED", message)


# delivery provider

class ProviderUnavailable(UpstreamFailure):
    def __init__(self, message="Delivery provider unavailable", details=None):
        super().__init__(message, details, code="PROVIDER_UNAVAILABLE")


class InvalidAddress(ServiceError):
    status = 400

    def __init__(self, message="Invalid address", details=None):
        super().__init__("INVALID_ADDRESS", message, details)
