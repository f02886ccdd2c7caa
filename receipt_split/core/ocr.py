"""
Text acquisition for receipt images and PDFs.

The parser only ever sees the finished text returned from here; the
optional progress callback receives a fraction between 0 and 1.
"""

import io
import logging
import os
from pathlib import Path
from typing import Callable, Optional, Sequence

from .utils import IMAGE_EXTS, PDF_EXTS, TEXT_EXTS

logger = logging.getLogger(__name__)

Progress = Optional[Callable[[float], None]]

DEFAULT_LANGUAGES = ("fin", "eng")
# Small images are scaled up so the longer edge reaches this size
TARGET_EDGE = 2000
CONTRAST = 1.8
PREPROCESS_SHARE = 0.1


def _lazy_import_ocr_deps():
    """Lazy import heavy OCR dependencies."""
    global pytesseract, PIL_Image, fitz
    import importlib
    pytesseract = importlib.import_module("pytesseract")
    PIL_Image = importlib.import_module("PIL.Image")
    fitz = importlib.import_module("fitz")  # pymupdf


# Initialize on first use
pytesseract = None
PIL_Image = None
fitz = None


def ocr_languages() -> Sequence[str]:
    """Tesseract languages to try, in order; RECEIPT_SPLIT_OCR_LANGS=fin,eng overrides."""
    raw = os.getenv("RECEIPT_SPLIT_OCR_LANGS", "")
    langs = [lang.strip() for lang in raw.split(",") if lang.strip()]
    return tuple(langs) or DEFAULT_LANGUAGES


def _report(progress: Progress, value: float):
    if progress is not None:
        progress(min(1.0, max(0.0, value)))


def preprocess_image(img):
    """Upscale, grayscale and boost contrast to help Tesseract on phone photos."""
    from PIL import ImageEnhance, ImageOps

    scale = max(1.0, TARGET_EDGE / max(img.width, img.height))
    if scale > 1.0:
        img = img.resize((int(img.width * scale), int(img.height * scale)))
    img = ImageOps.grayscale(img)
    return ImageEnhance.Contrast(img).enhance(CONTRAST)


def _recognize(img, languages: Sequence[str]) -> str:
    """Run Tesseract with the first language whose data is installed."""
    last_error = None
    for lang in languages:
        try:
            return pytesseract.image_to_string(img, lang=lang)
        except pytesseract.TesseractError as e:
            logger.warning("Tesseract language %r failed, trying next: %s", lang, e)
            last_error = e
    if last_error is not None:
        raise last_error
    return pytesseract.image_to_string(img)


def ocr_image(img, languages: Optional[Sequence[str]] = None, progress: Progress = None) -> str:
    """OCR an already opened PIL image."""
    if pytesseract is None:
        _lazy_import_ocr_deps()

    try:
        img = preprocess_image(img)
    except (OSError, ValueError) as e:
        logger.warning("Image preprocessing failed, using original: %s", e)
    _report(progress, PREPROCESS_SHARE)

    text = _recognize(img, languages or ocr_languages())
    _report(progress, 1.0)
    return text


def ocr_image_to_text(img_path: Path, languages: Optional[Sequence[str]] = None,
                      progress: Progress = None) -> str:
    """OCR an image file to text."""
    if PIL_Image is None:
        _lazy_import_ocr_deps()

    from PIL import Image
    with Image.open(img_path) as img:
        img.load()
        return ocr_image(img, languages=languages, progress=progress)


def pdf_to_text(pdf_path: Path, languages: Optional[Sequence[str]] = None,
                progress: Progress = None) -> str:
    """
    Extract text from a PDF using PyMuPDF.

    Scanned PDFs without a text layer have their first page rendered
    at 2x and OCR'd instead.
    """
    if fitz is None:
        _lazy_import_ocr_deps()

    import fitz as fitz_module
    doc = fitz_module.open(pdf_path.as_posix())
    try:
        chunks = []
        for n, page in enumerate(doc, 1):
            chunks.append(page.get_text())
            _report(progress, n / max(1, len(doc)))
        if any(chunk.strip() for chunk in chunks):
            return "\n".join(chunks)

        logger.info("No text layer in %s, running OCR on first page", pdf_path.name)
        mat = fitz_module.Matrix(2, 2)
        pix = doc[0].get_pixmap(matrix=mat, alpha=False)
        img_bytes = pix.tobytes("png")
    finally:
        doc.close()

    from PIL import Image
    with Image.open(io.BytesIO(img_bytes)) as img:
        img.load()
        return ocr_image(img, languages=languages, progress=progress)


def extract_text(path: Path, languages: Optional[Sequence[str]] = None,
                 progress: Progress = None) -> str:
    """
    Get the raw text of a receipt file.

    Images are OCR'd, PDFs use their text layer (or OCR), and .txt files
    are read verbatim so already extracted text can be re-parsed.
    """
    ext = path.suffix.lower()
    if ext in TEXT_EXTS:
        text = path.read_text(encoding="utf-8")
        _report(progress, 1.0)
        return text
    if ext in IMAGE_EXTS:
        return ocr_image_to_text(path, languages=languages, progress=progress)
    if ext in PDF_EXTS:
        return pdf_to_text(path, languages=languages, progress=progress)
    raise ValueError(f"Unsupported file type: {path}")
