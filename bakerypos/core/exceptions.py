"""
Error taxonomy for the POS API.

Every error is an ``HTTPException`` so services can raise them and routers can
let them propagate exactly like plain HTTP errors; FastAPI renders them as
``{"detail": ...}`` with the matching status code.
"""
from typing import Optional
from uuid import UUID

from fastapi import HTTPException, status


class POSError(HTTPException):
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    default_detail = "Internal server error"

    def __init__(self, detail: Optional[str] = None, headers: Optional[dict] = None):
        super().__init__(
            status_code=self.status_code,
            detail=detail or self.default_detail,
            headers=headers
        )


class ValidationError(POSError):
    status_code = status.HTTP_400_BAD_REQUEST
    default_detail = "Invalid request"


class AuthenticationError(POSError):
    status_code = status.HTTP_401_UNAUTHORIZED
    default_detail = "Unauthorized"

    def __init__(self, detail: Optional[str] = None):
        super().__init__(detail, headers={"WWW-Authenticate": "Bearer"})


class AuthorizationError(POSError):
    status_code = status.HTTP_403_FORBIDDEN
    default_detail = "Forbidden: Insufficient permissions"


class NotFoundError(POSError):
    status_code = status.HTTP_404_NOT_FOUND
    default_detail = "Resource not found"


class ProductNotFoundError(NotFoundError):
    def __init__(self, product_id: UUID):
        self.product_id = product_id
        super().__init__(f"Product {product_id} not found")


class ConflictError(POSError):
    status_code = status.HTTP_409_CONFLICT
    default_detail = "Resource already exists"


class InsufficientStockError(POSError):
    status_code = status.HTTP_409_CONFLICT

    def __init__(self, product_id: UUID, requested: int, product_name: Optional[str] = None):
        self.product_id = product_id
        self.requested = requested
        label = f"'{product_name}'" if product_name else str(product_id)
        super().__init__(f"Insufficient stock for product {label} (requested {requested})")


class PersistenceError(POSError):
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    default_detail = "Failed to persist record"

    def __init__(self, detail: Optional[str] = None, retryable: bool = False):
        self.retryable = retryable
        super().__init__(detail)


class UpstreamError(POSError):
    status_code = status.HTTP_502_BAD_GATEWAY
    default_detail = "Payment gateway request failed"
