"""PDF text extraction by OCR over rendered pages."""

import io
from typing import List, Optional

import fitz  # PyMuPDF
import pytesseract
from PIL import Image

from app.core.config import settings
from app.core.exceptions import ExtractionFailed
from app.core.logging import logger


class OcrEngine:
    """Tesseract recognition scoped to one batch of page images.

    Use as a context manager; ``recognize`` is only valid inside the block.
    """

    def __init__(self, language: str, tesseract_cmd: Optional[str] = None):
        self.language = language
        self.tesseract_cmd = tesseract_cmd
        self._ready = False

    def __enter__(self) -> "OcrEngine":
        if self.tesseract_cmd:
            pytesseract.pytesseract.tesseract_cmd = self.tesseract_cmd
        try:
            version = pytesseract.get_tesseract_version()
        except (pytesseract.TesseractNotFoundError, OSError) as e:
            raise ExtractionFailed(f"OCR engine not available: {e}") from e
        logger.debug(f"OCR engine ready: tesseract {version}, lang={self.language}")
        self._ready = True
        return self

    def __exit__(self, exc_type, exc, tb) -> bool:
        self._ready = False
        return False

    def recognize(self, image_bytes: bytes) -> str:
        if not self._ready:
            raise RuntimeError("OcrEngine.recognize() called outside its context")
        try:
            with Image.open(io.BytesIO(image_bytes)) as image:
                return pytesseract.image_to_string(image, lang=self.language) or ""
        except pytesseract.TesseractError as e:
            raise ExtractionFailed(f"OCR failed: {e.message}") from e
        except (OSError, RuntimeError) as e:
            # Unreadable image data, or tesseract timed out or died
            raise ExtractionFailed(f"OCR failed: {e}") from e


class PDFService:
    """Turns PDF bytes into text by OCR-ing every page.

    Native text layers are ignored so scanned and digital PDFs are handled
    the same way.
    """

    def __init__(
        self,
        language: str = settings.OCR_LANGUAGE,
        render_scale: float = settings.OCR_RENDER_SCALE,
        tesseract_cmd: Optional[str] = settings.TESSERACT_CMD,
    ):
        self.language = language
        self.render_scale = render_scale
        self.tesseract_cmd = tesseract_cmd

    def render_pages(self, pdf_content: bytes) -> List[bytes]:
        """Render every page to PNG bytes, dropping pages that fail or render empty."""
        matrix = fitz.Matrix(self.render_scale, self.render_scale)
        images = []

        try:
            doc = fitz.open(stream=pdf_content, filetype="pdf")
        except (RuntimeError, ValueError) as e:
            raise ExtractionFailed(f"Could not open PDF: {e}") from e

        with doc:
            # Pages of a password-protected document cannot be loaded
            if doc.needs_pass:
                raise ExtractionFailed("Could not open PDF: document is encrypted")

            for index in range(doc.page_count):
                try:
                    page = doc.load_page(index)
                    png = page.get_pixmap(matrix=matrix, alpha=False).tobytes("png")
                except (RuntimeError, ValueError) as e:
                    logger.warning(f"Page {index + 1} failed to render, skipping: {e}")
                    continue
                if png:
                    images.append(png)
                else:
                    logger.warning(f"Page {index + 1} rendered empty, skipping")

        return images

    def extract_text(self, pdf_content: bytes) -> str:
        """OCR all pages and join the non-empty results with a blank line.

        Raises ExtractionFailed when no page yields readable text.
        """
        page_images = self.render_pages(pdf_content)
        chunks = []

        with OcrEngine(self.language, self.tesseract_cmd) as engine:
            for index, image_bytes in enumerate(page_images, start=1):
                text = engine.recognize(image_bytes).strip()
                if text:
                    chunks.append(text)
                logger.debug(f"OCR page {index}/{len(page_images)}: {len(text)} chars")

        extracted = "\n\n".join(chunks).strip()
        if not extracted:
            raise ExtractionFailed("OCR could not extract readable text from this PDF")

        logger.info(
            f"OCR extracted {len(extracted)} chars from "
            f"{len(chunks)}/{len(page_images)} page(s)"
        )
        return extracted


# Singleton instance
pdf_service = PDFService()
