"""Device protocol routes."""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, Header, HTTPException, Request, Response, status

from recsync.core.errors import TransferError
from recsync.device.schemas import FileEntryResponse, HealthResponse, entry_to_response
from recsync.links.local import LocalLink

logger = logging.getLogger(__name__)

router = APIRouter(tags=["device"])


def get_link(request: Request) -> LocalLink:
    """Get the repository served by this app."""
    link: LocalLink = request.app.state.link
    return link


def _check_path(path: str) -> None:
    if ".." in path.split("/"):
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Invalid path: {path}",
        )


@router.get("/health", response_model=HealthResponse)
def health_check() -> HealthResponse:
    """Check device health."""
    return HealthResponse(status="ok")


@router.get("/list/{prefix:path}", response_model=list[FileEntryResponse])
def list_files(
    prefix: str,
    link: LocalLink = Depends(get_link),
) -> list[FileEntryResponse]:
    """List files under a prefix."""
    _check_path(prefix)
    return [entry_to_response(e) for e in link.list_files(prefix)]


@router.get("/files/{path:path}")
def get_file(path: str, link: LocalLink = Depends(get_link)) -> Response:
    """Download a file."""
    _check_path(path)
    try:
        data = link.get_file(path)
    except TransferError as e:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"File not found: {path}",
        ) from e
    return Response(content=data, media_type="application/octet-stream")


@router.put("/files/{path:path}", status_code=status.HTTP_204_NO_CONTENT)
async def put_file(
    path: str,
    request: Request,
    x_mtime: float | None = Header(default=None),
    link: LocalLink = Depends(get_link),
) -> Response:
    """Upload a file, optionally stamping its modification time."""
    _check_path(path)
    data = await request.body()
    try:
        link.put_file(path, data, mtime=x_mtime)
    except TransferError as e:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=str(e),
        ) from e
    logger.info(f"Received {path} ({len(data)} bytes)")
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.post("/notify/{event}", status_code=status.HTTP_204_NO_CONTENT)
def notify(event: str, request: Request) -> Response:
    """Record a notification from the host."""
    request.app.state.notifications.append(event)
    logger.info(f"Notification from host: {event}")
    return Response(status_code=status.HTTP_204_NO_CONTENT)
