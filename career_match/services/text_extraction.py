"""
Best-effort text extraction from uploaded CV documents.

Each format has a primary reader (pdfminer for PDF, python-docx for DOCX) and
byte-level fallbacks. Extraction never raises: when nothing readable is
recovered the result carries a short sentinel text and ``limited=True``.
"""
import io
import re
import zipfile
from pathlib import PurePath
from typing import Callable, List, Tuple

from docx import Document
from pdfminer.high_level import extract_text as pdf_extract

from career_match.models.models import ExtractedDocument
from career_match.utils.logging_config import get_logger

logger = get_logger(__name__)

LIMITED_PDF = "PDF document uploaded (automatic text extraction may be limited)"
LIMITED_WORD = "Word document uploaded (automatic text extraction may be limited)"
LIMITED_TEXT = "Document uploaded (automatic text extraction may be limited)"
SENTINELS = (LIMITED_PDF, LIMITED_WORD, LIMITED_TEXT)

MIN_USEFUL_CHARS = 20

_STREAM_RE = re.compile(rb"stream\r?\n?(.*?)endstream", re.DOTALL)
_PDF_TEXT_OP_RE = re.compile(r"\(((?:\\.|[^\\)])*)\)\s*T[jJ']")
_W_T_RE = re.compile(r"<w:t[^>]*>([^<]+)</w:t>", re.IGNORECASE)
_W_P_END_RE = re.compile(r"</w:p>", re.IGNORECASE)
_NON_PRINTABLE_RE = re.compile(r"[^\x20-\x7E\n\r\t]")
_HSPACE_RE = re.compile(r"[ \t\f\v]+")


def detect_format(filename: str, buffer: bytes) -> str:
    ext = PurePath(filename or "").suffix.lower()
    if ext == ".pdf":
        return "pdf"
    if ext in (".docx", ".doc"):
        return "word"
    if ext in (".txt", ".md", ".text"):
        return "text"
    if buffer.startswith(b"%PDF"):
        return "pdf"
    if buffer.startswith(b"PK\x03\x04") or buffer.startswith(b"\xd0\xcf\x11\xe0"):
        return "word"
    return "text"


def normalize_lines(text: str) -> str:
    """Collapse horizontal whitespace per line and squeeze blank-line runs."""
    out: List[str] = []
    blank = False
    for raw in text.replace("\r\n", "\n").replace("\r", "\n").split("\n"):
        line = _HSPACE_RE.sub(" ", raw).strip()
        if not line:
            if out and not blank:
                out.append("")
            blank = True
            continue
        out.append(line)
        blank = False
    return "\n".join(out).strip()


def printable_text(buffer: bytes) -> str:
    text = buffer.decode("latin-1")
    return normalize_lines(_NON_PRINTABLE_RE.sub(" ", text))


def read_pdf(buffer: bytes) -> str:
    return pdf_extract(io.BytesIO(buffer))


def pdf_stream_text(buffer: bytes) -> str:
    """Pull readable text out of stream...endstream blocks without a PDF parser."""
    chunks: List[str] = []
    for match in _STREAM_RE.finditer(buffer):
        raw = match.group(1).decode("latin-1")
        operands = _PDF_TEXT_OP_RE.findall(raw)
        if operands:
            chunk = "\n".join(op.replace("\\(", "(").replace("\\)", ")") for op in operands)
        else:
            chunk = _NON_PRINTABLE_RE.sub(" ", raw)
        chunk = normalize_lines(chunk)
        if len(chunk) > 10:
            chunks.append(chunk)
    return "\n".join(chunks)


def read_docx(buffer: bytes) -> str:
    doc = Document(io.BytesIO(buffer))
    return "\n".join(p.text for p in doc.paragraphs)


def docx_xml_text(buffer: bytes) -> str:
    """Match <w:t> text runs in word/document.xml, or in the raw bytes when the zip is unreadable."""
    try:
        with zipfile.ZipFile(io.BytesIO(buffer)) as archive:
            buffer = archive.read("word/document.xml")
    except (zipfile.BadZipFile, KeyError):
        # not a readable archive; scan the bytes as they are
        pass
    text = buffer.decode("utf-8", errors="ignore")
    lines = []
    for paragraph in _W_P_END_RE.split(text):
        runs = _W_T_RE.findall(paragraph)
        if runs:
            lines.append("".join(runs))
    return "\n".join(lines)


def read_txt(buffer: bytes) -> str:
    return buffer.decode("utf-8-sig", errors="ignore")


_STRATEGIES = {
    "pdf": [("pdfminer", read_pdf), ("pdf-streams", pdf_stream_text), ("printable-bytes", printable_text)],
    "word": [("python-docx", read_docx), ("docx-xml-runs", docx_xml_text), ("printable-bytes", printable_text)],
    "text": [("utf-8", read_txt)],
}

_SENTINEL_FOR = {"pdf": LIMITED_PDF, "word": LIMITED_WORD, "text": LIMITED_TEXT}


def _run_strategies(buffer: bytes, strategies: List[Tuple[str, Callable[[bytes], str]]], notes: List[str]) -> Tuple[str, str]:
    best_text, best_method = "", ""
    for method, reader in strategies:
        try:
            text = normalize_lines(reader(buffer) or "")
        except Exception as e:
            notes.append(f"{method} failed: {e.__class__.__name__}")
            logger.debug(f"{method} extraction failed: {e}")
            continue
        if len(text) >= MIN_USEFUL_CHARS:
            return text, method
        if len(text) > len(best_text):
            best_text, best_method = text, method
    return best_text, best_method


def extract_document(buffer: bytes, filename: str) -> ExtractedDocument:
    """Extract plain text from a CV upload; never raises."""
    fmt = detect_format(filename, buffer or b"")
    notes: List[str] = []

    if not buffer:
        notes.append("Empty upload")
        logger.warning(f"CV text extraction may be limited for {filename}: empty upload")
        return ExtractedDocument(filename=filename, format=fmt, text=_SENTINEL_FOR[fmt], method="none", limited=True, notes=notes)

    text, method = _run_strategies(buffer, _STRATEGIES[fmt], notes)
    limited = method != _STRATEGIES[fmt][0][0] or len(text) < MIN_USEFUL_CHARS

    if not text:
        text, method = _SENTINEL_FOR[fmt], "none"
        limited = True

    if limited:
        notes.append(f"Reduced fidelity: text recovered with {method}")
        logger.warning(f"CV text extraction may be limited for {filename} ({fmt}, method={method})")
    else:
        logger.debug(f"Extracted {len(text)} characters from {filename} with {method}")

    return ExtractedDocument(filename=filename, format=fmt, text=text, method=method, limited=limited, notes=notes)


def is_sentinel(text: str) -> bool:
    return text.strip() in SENTINELS
