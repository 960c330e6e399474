# backend/crm/core/errors.py

"""
HTTP error taxonomy.

Every failure the API reports on purpose is one of these. They are plain
HTTPException subclasses, so FastAPI renders them as {"detail": ...}.
"""

from typing import Iterable, Optional

from fastapi import HTTPException, status


class ValidationFailed(HTTPException):
    def __init__(self, detail: str = "Invalid input"):
        super().__init__(status_code=status.HTTP_400_BAD_REQUEST, detail=detail)


class ConflictError(HTTPException):
    # uniqueness violations are reported as 400, not 409
    def __init__(self, detail: str = "Resource already exists"):
        super().__init__(status_code=status.HTTP_400_BAD_REQUEST, detail=detail)


class Unauthenticated(HTTPException):
    def __init__(self, detail: str = "Not authenticated"):
        super().__init__(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=detail,
            headers={"WWW-Authenticate": "Bearer"},
        )


class Forbidden(HTTPException):
    def __init__(
        self,
        message: str = "You do not have permission to perform this action",
        required_permissions: Optional[Iterable[str]] = None,
    ):
        detail = message
        if required_permissions is not None:
            detail = {
                "message": message,
                "required_permissions": list(required_permissions),
            }
        super().__init__(status_code=status.HTTP_403_FORBIDDEN, detail=detail)


class NotFoundError(HTTPException):
    def __init__(self, detail: str = "Not found"):
        super().__init__(status_code=status.HTTP_404_NOT_FOUND, detail=detail)


class DeliveryFailed(HTTPException):
    def __init__(self, detail: str = "Email could not be sent. Please try again later."):
        super().__init__(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=detail)
