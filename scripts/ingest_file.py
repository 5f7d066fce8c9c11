#!/usr/bin/env python
"""
Push a local file through the media pipeline.

Useful to re-attach media to a message after a failed run, e.g. when the
object was stored but the message row was never linked.
"""
import argparse
import asyncio
import base64
import json
import logging
import sys
from pathlib import Path

from media_processor.app.api.deps import get_storage_provider
from media_processor.app.db.session import SessionLocal
from media_processor.app.schemas.media import MediaIngestionRequest
from media_processor.app.services.errors import MediaProcessingError
from media_processor.app.services.media_ingestion_service import process_media

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger("ingest_file")


async def run(args: argparse.Namespace) -> int:
    path = Path(args.path)
    request = MediaIngestionRequest(
        message_id=args.message_id,
        base64=base64.b64encode(path.read_bytes()).decode("ascii"),
        file_name=args.file_name or path.name,
        mime_type=args.mime_type,
        conversation_id=args.conversation_id,
        workspace_id=args.workspace_id,
    )
    with SessionLocal() as db:
        try:
            result = await process_media(request, db, get_storage_provider())
        except MediaProcessingError:
            logger.exception("Ingestion failed for %s", path)
            return 1
    print(json.dumps(result.to_data().model_dump(by_alias=True), indent=2))
    return 0


def main() -> int:
    parser = argparse.ArgumentParser(description=__doc__)
    parser.add_argument("message_id", help="message UUID or external id")
    parser.add_argument("path", help="file to upload")
    parser.add_argument("--file-name")
    parser.add_argument("--mime-type")
    parser.add_argument("--conversation-id")
    parser.add_argument("--workspace-id")
    return asyncio.run(run(parser.parse_args()))


if __name__ == "__main__":
    sys.exit(main())
