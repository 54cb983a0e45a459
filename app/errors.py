"""
app/errors.py — Error taxonomy shared by the services and the API layer.

Every error carries a human-readable message and the HTTP status code the
API renders it with, as {"error": message}.
"""


class RubricError(Exception):
    status_code = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ValidationError(RubricError):
    """A required field is missing or malformed."""
    status_code = 400


class CredentialMissing(RubricError):
    status_code = 401


class CredentialInvalid(RubricError):
    """Bad signature, expired or malformed bearer token."""
    status_code = 401


class NotAuthorized(RubricError):
    """Valid identity without the permission the operation needs."""
    status_code = 403


class NotFound(RubricError):
    status_code = 404


class StoreFailure(RubricError):
    """Any persistence-layer error. The unit of work is rolled back."""
    status_code = 500


class ProviderUnavailable(RubricError):
    """External provider unreachable. Safe for the caller to retry."""
    status_code = 503


class IdentityLookupFailed(ProviderUnavailable):
    """Identity provider unreachable or the token's subject does not exist."""
