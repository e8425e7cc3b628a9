"""Text extraction from uploaded PDF and plain-text files."""
import logging
from typing import Optional

import fitz  # PyMuPDF

from models.document import RawDocument

logger = logging.getLogger(__name__)

PDF_MEDIA_TYPE = "application/pdf"
TEXT_MEDIA_TYPES = {"text/plain", "text/markdown"}
_SUFFIX_MEDIA_TYPES = {
    ".pdf": PDF_MEDIA_TYPE,
    ".txt": "text/plain",
    ".md": "text/markdown",
}


def guess_media_type(filename: str) -> Optional[str]:
    """Media type from a file suffix, None when unsupported."""
    lowered = filename.lower()
    for suffix, media_type in _SUFFIX_MEDIA_TYPES.items():
        if lowered.endswith(suffix):
            return media_type
    return None


class DocumentLoader:
    """Extracts plain text from uploaded bytes."""

    def load(self, owner_id: str, filename: str, content: bytes, media_type: Optional[str] = None) -> RawDocument:
        """
        Extract an uploaded file into a RawDocument.

        Args:
            owner_id: Owner of the upload
            filename: Original file name
            content: Raw file bytes
            media_type: Declared media type (guessed from the file name when missing)

        Returns:
            RawDocument with the extracted text

        Raises:
            ValueError: If the file is empty, unsupported, or has no extractable text
        """
        if not content:
            raise ValueError("No file content uploaded")

        media_type = media_type or guess_media_type(filename)
        if media_type == PDF_MEDIA_TYPE:
            text = self._extract_pdf(content, filename)
        elif media_type in TEXT_MEDIA_TYPES:
            text = content.decode("utf-8", errors="replace")
        else:
            raise ValueError(f"Unsupported file type: {media_type}")

        if not text.strip():
            raise ValueError("Could not extract text from file")

        logger.info(f"Extracted {len(text)} characters from {filename} ({media_type})")
        return RawDocument(owner_id=owner_id, filename=filename, text=text, media_type=media_type)

    def _extract_pdf(self, content: bytes, filename: str) -> str:
        """Extract text page by page with PyMuPDF."""
        try:
            pdf_document = fitz.open(stream=content, filetype="pdf")
        except Exception as e:
            logger.error(f"Failed to open PDF {filename}: {str(e)}")
            raise ValueError(f"Could not read PDF file: {filename}") from e

        try:
            pages = [page.get_text() for page in pdf_document]
        finally:
            pdf_document.close()

        return "\n".join(pages)
