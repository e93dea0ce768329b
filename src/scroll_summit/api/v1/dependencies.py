"""Shared API dependencies."""

from typing import Annotated

from fastapi import Depends, HTTPException, status
from fastapi.requests import HTTPConnection
from sqlalchemy.orm import Session

from scroll_summit.db.session import get_db
from scroll_summit.services.runtime import WorkerRuntime

# Type alias for database session dependency
SessionDep = Annotated[Session, Depends(get_db)]


def get_runtime(connection: HTTPConnection) -> WorkerRuntime:
    """Return the aggregation runtime attached to the application at startup.

    Raises:
        HTTPException: If the runtime has not been started yet.
    """
    runtime: WorkerRuntime | None = getattr(connection.app.state, "runtime", None)
    if runtime is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Aggregation runtime not started",
        )
    return runtime


RuntimeDep = Annotated[WorkerRuntime, Depends(get_runtime)]
