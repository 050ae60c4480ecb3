"""Convert uploaded documents into base64 request parts."""

import base64
import logging
from typing import Iterable, List

from .models import Document, EncodedPart

LOG = logging.getLogger(__name__)


def encode_document(document: Document) -> EncodedPart:
    """
    Encode one document for embedding in a model request.

    Args:
        document: Image or PDF to encode

    Returns:
        EncodedPart with the base64 payload and the document's media type

    Raises:
        EncodingError: If the document's bytes cannot be read
    """
    raw = document.read_bytes()
    LOG.debug(f"Encoded {document.display_name} ({document.mime_type}, {len(raw):,} bytes)")
    return EncodedPart(
        media_type=document.mime_type,
        data=base64.b64encode(raw).decode("ascii"),
    )


def encode_documents(documents: Iterable[Document]) -> List[EncodedPart]:
    """Encode documents in order."""
    return [encode_document(doc) for doc in documents]
