"""Tasks API endpoints."""
import logging
from typing import Optional

from fastapi import APIRouter, Depends, Query, Request
from starlette.responses import Response

from taskdb.config import settings
from taskdb.core.exceptions import BadRequestError, DocumentRejectedError, NotFoundError, PayloadTooLargeError
from taskdb.schemas.task import SaveTasksResponse
from taskdb.services.persistence_service import PersistenceService, persistence_service

logger = logging.getLogger(__name__)

router = APIRouter()

NO_STORE = {"Cache-Control": "no-store"}


def get_persistence_service() -> PersistenceService:
    return persistence_service


@router.get("")
async def read_tasks(
    project: Optional[str] = Query(None),
    service: PersistenceService = Depends(get_persistence_service),
):
    """Return the stored document exactly as it was written."""
    raw = service.read_document(project)
    if raw is None:
        raise NotFoundError("tasks.json not found")
    return Response(content=raw, media_type="application/json; charset=utf-8", headers=NO_STORE)


@router.put("", response_model=SaveTasksResponse)
async def write_tasks(
    request: Request,
    response: Response,
    project: Optional[str] = Query(None),
    service: PersistenceService = Depends(get_persistence_service),
):
    """Replace the stored document and regenerate its CSV and state files."""
    body = await request.body()
    if len(body) > settings.MAX_BODY_BYTES:
        raise PayloadTooLargeError()

    try:
        payload = service.parse_payload(body.decode("utf-8"))
        count = service.write_document(project, payload)
    except UnicodeDecodeError as exc:
        raise BadRequestError(f"Request body is not UTF-8: {exc}") from exc
    except DocumentRejectedError as exc:
        logger.warning("Rejected tasks document for project %s: %s", project or "-", exc)
        raise BadRequestError(str(exc)) from exc

    response.headers["Cache-Control"] = NO_STORE["Cache-Control"]
    return SaveTasksResponse(ok=True, tasks=count)
