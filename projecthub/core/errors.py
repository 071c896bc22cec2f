"""Domain error taxonomy.

Request-facing errors subclass ``HTTPException`` so services can raise them
directly and FastAPI renders them without extra handlers.
"""

from __future__ import annotations

from fastapi import HTTPException, status


class NotFoundError(HTTPException):
    """Referenced project, phase, deliverable, task or grant does not exist."""

    def __init__(self, detail: str) -> None:
        super().__init__(status_code=status.HTTP_404_NOT_FOUND, detail=detail)


class UnauthorizedError(HTTPException):
    """Capability check failed; raised before any write."""

    def __init__(self, detail: str = "Insufficient project permissions for this operation.") -> None:
        super().__init__(status_code=status.HTTP_403_FORBIDDEN, detail=detail)


class InvalidStateError(HTTPException):
    """Unrecognized status value or broken ownership invariant."""

    def __init__(self, detail: str) -> None:
        super().__init__(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail=detail)


class ConflictError(HTTPException):
    def __init__(self, detail: str) -> None:
        super().__init__(status_code=status.HTTP_409_CONFLICT, detail=detail)


class TransientInfrastructureError(Exception):
    """Side-effect infrastructure failed (e.g. notification publish).

    Never surfaced to the caller of the mutation that triggered it.
    """
