"""
Plain-text extraction from PDF bytes with PyMuPDF.
"""

import pymupdf

from papervault.core.exceptions import ClassifierFailure


def extract_text(content: bytes, limit: int = 1500) -> str:
    """
    Returns up to `limit` characters of lower-cased text from the start of the
    document. Pages are read only until the limit is reached.

    Raises ClassifierFailure if the bytes are not a readable PDF.
    """
    if not content:
        raise ClassifierFailure("Empty document.")
    try:
        doc = pymupdf.open(stream=content, filetype="pdf")
    except Exception as e:
        raise ClassifierFailure(f"Unreadable PDF: {e}") from e

    parts = []
    collected = 0
    try:
        for page in doc:
            text = page.get_text()
            parts.append(text)
            collected += len(text)
            if collected >= limit:
                break
    except Exception as e:
        raise ClassifierFailure(f"Failed extracting PDF text: {e}") from e
    finally:
        doc.close()

    return "".join(parts).lower()[:limit]
