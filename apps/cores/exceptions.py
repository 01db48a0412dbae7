"""
Lifecycle error kinds.

They are DRF APIExceptions so a view can let them propagate and the
client receives the status code plus a message naming the violated rule.
"""
from rest_framework import status
from rest_framework.exceptions import APIException


class LifecycleError(APIException):
    status_code = status.HTTP_400_BAD_REQUEST
    default_detail = "Lifecycle rule violated."
    default_code = "lifecycle_error"


class AuthorizationError(LifecycleError):
    """Actor lacks the role or ownership the transition requires."""
    status_code = status.HTTP_403_FORBIDDEN
    default_detail = "You are not allowed to perform this action."
    default_code = "authorization_error"


class InvalidStateError(LifecycleError):
    """Current status does not permit the requested transition."""
    status_code = status.HTTP_409_CONFLICT
    default_detail = "Transition not allowed from the current status."
    default_code = "invalid_state"


class StateConflict(LifecycleError):
    """Precondition held when read but not at commit time."""
    status_code = status.HTTP_409_CONFLICT
    default_detail = "The record was changed by another request. Reload and retry."
    default_code = "state_conflict"


class ValidationError(LifecycleError):
    status_code = status.HTTP_400_BAD_REQUEST
    default_detail = "Invalid input."
    default_code = "validation_error"


class CollaboratorUnavailable(LifecycleError):
    """An external service (gateway, classifier) could not answer."""
    status_code = status.HTTP_503_SERVICE_UNAVAILABLE
    default_detail = "An external service is unavailable."
    default_code = "collaborator_unavailable"
