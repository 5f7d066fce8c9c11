from media_processor.app.db.models import MessageType


def classify_mime_type(mime_type: str) -> MessageType:
    """Map a resolved MIME type onto the message taxonomy.

    Prefix checks run before the exact PDF match; anything left is a file.
    """
    mime = (mime_type or "").lower()
    if mime.startswith("image/"):
        return MessageType.IMAGE
    if mime.startswith("video/"):
        return MessageType.VIDEO
    # audio/webm and audio/ogg land here too
    if mime.startswith("audio/"):
        return MessageType.AUDIO
    if mime == "application/pdf":
        return MessageType.DOCUMENT
    return MessageType.FILE
