import logging

from fastapi import APIRouter, Depends, Response, status
from fastapi.responses import JSONResponse
from sqlalchemy.orm import Session

from media_processor.app.api.deps import get_db_session, get_storage_provider, verify_invocation
from media_processor.app.schemas.media import MediaIngestionRequest, MediaIngestionResponse
from media_processor.app.services.errors import MediaProcessingError
from media_processor.app.services.media_ingestion_service import process_media
from media_processor.app.services.storage.base import StorageProvider

router = APIRouter(tags=["media"])
logger = logging.getLogger(__name__)

CORS_HEADERS = {
    "Access-Control-Allow-Origin": "*",
    "Access-Control-Allow-Headers": "authorization, x-client-info, apikey, content-type",
    "Access-Control-Allow-Methods": "POST, OPTIONS",
}


def failure_response(message: str, status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content={"success": False, "error": message},
        headers=CORS_HEADERS,
    )


@router.options("/n8n-media-processor")
async def media_processor_preflight() -> Response:
    return Response(status_code=status.HTTP_204_NO_CONTENT, headers=CORS_HEADERS)


@router.post("/n8n-media-processor", dependencies=[Depends(verify_invocation)])
async def ingest_media(
    payload: MediaIngestionRequest,
    db: Session = Depends(get_db_session),
    storage: StorageProvider = Depends(get_storage_provider),
):
    logger.info(
        "Media ingestion request",
        extra={
            "message_id": payload.message_id,
            "source": payload.source,
            "file_name": payload.file_name,
            "mime_type": payload.mime_type,
            "direction": payload.direction,
        },
    )
    try:
        result = await process_media(payload, db, storage)
    except MediaProcessingError as exc:
        logger.exception("Media ingestion failed for message %s", payload.message_id)
        return failure_response(str(exc))
    except Exception as exc:  # noqa: BLE001
        logger.exception("Unexpected error processing media for message %s", payload.message_id)
        return failure_response(str(exc) or "internal server error")

    body = MediaIngestionResponse(data=result.to_data())
    return JSONResponse(content=body.model_dump(by_alias=True), headers=CORS_HEADERS)
