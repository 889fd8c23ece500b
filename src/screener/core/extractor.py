from __future__ import annotations

import asyncio
import logging

import fitz  # PyMuPDF

from screener.errors import ExtractionError

logger = logging.getLogger(__name__)

MIN_RESUME_CHARS = 50


def extract_pdf_text(data: bytes, *, min_chars: int = MIN_RESUME_CHARS) -> str:
    """Return the text layer of a PDF blob.

    Text runs on a page are joined by single spaces and pages by a line
    break, in page order. Raises ExtractionError when the blob is not a
    readable PDF or yields fewer than ``min_chars`` characters.
    """
    try:
        doc = fitz.open(stream=data, filetype="pdf")
    except Exception as exc:
        raise ExtractionError(f"无法读取PDF文件: {exc or '未知错误'}") from exc

    try:
        pages = [_page_text(page) for page in doc]
    except Exception as exc:
        raise ExtractionError(f"无法读取PDF文件: {exc or '未知错误'}") from exc
    finally:
        doc.close()

    text = "\n".join(pages).strip()
    logger.debug("Extracted %d characters from %d pages", len(text), len(pages))
    if len(text) < min_chars:
        raise ExtractionError("PDF内容过少或无法提取，请检查文件")
    return text


async def extract_pdf_text_async(data: bytes, *, min_chars: int = MIN_RESUME_CHARS) -> str:
    return await asyncio.to_thread(extract_pdf_text, data, min_chars=min_chars)


def _page_text(page: fitz.Page) -> str:
    runs: list[str] = []
    for block in page.get_text("dict")["blocks"]:
        # Image blocks carry no "lines".
        for line in block.get("lines", []):
            for span in line["spans"]:
                if span["text"]:
                    runs.append(span["text"])
    return " ".join(runs)
