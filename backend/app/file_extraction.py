"""
Tabular data extraction from uploaded files.

Spreadsheets and CSV files are parsed locally. Everything else (and any
spreadsheet the local parser cannot read) is handed to the extraction agent,
either as text or, for images and scanned PDFs, as a data-URL content part.
"""

import base64
import binascii
import csv
import io
import logging
import zipfile
from collections.abc import Iterable, Sequence
from typing import Any

import httpx
from openpyxl import load_workbook
from openpyxl.utils.exceptions import InvalidFileException
from pypdf import PdfReader
from pypdf.errors import PdfReadError
from sqlmodel import Session

from app.agent.artifacts import ExtractionInput, ExtractionResult
from app.agent.extraction_agent import ExtractionAgent
from app.ai_cache import cached_structured
from app.models import FileExtractionRequest

logger = logging.getLogger(__name__)

MAX_PROMPT_CHARS = 15000
TEXT_CONTENT_TYPES = ("csv", "json", "text")


def is_spreadsheet(file_name: str, file_type: str) -> bool:
    name = file_name.lower()
    return (
        "spreadsheet" in file_type
        or "excel" in file_type
        or name.endswith(".xlsx")
        or name.endswith(".xls")
    )


def is_csv(file_name: str, file_type: str) -> bool:
    return file_type == "text/csv" or file_name.lower().endswith(".csv")


def truncate(text: str, limit: int = MAX_PROMPT_CHARS) -> str:
    if len(text) <= limit:
        return text
    return text[:limit] + "...[truncated]"


def table_from_rows(rows: Iterable[Sequence[Any]]) -> ExtractionResult:
    """
    Build headers and row objects from raw rows. The first row holds the headers;
    blank header cells are skipped and rows without any value are dropped.
    """
    iterator = iter(rows)
    first = next(iterator, None)
    if first is None:
        return ExtractionResult()

    columns = [
        (idx, str(value).strip())
        for idx, value in enumerate(first)
        if value is not None and str(value).strip()
    ]
    data_rows = []
    for raw in iterator:
        row = {}
        for idx, header in columns:
            value = raw[idx] if idx < len(raw) else None
            row[header] = "" if value is None else str(value)
        if any(value.strip() for value in row.values()):
            data_rows.append(row)
    return ExtractionResult(headers=[header for _, header in columns], rows=data_rows)


def parse_spreadsheet(data: bytes) -> ExtractionResult:
    try:
        workbook = load_workbook(io.BytesIO(data), read_only=True, data_only=True)
    except (InvalidFileException, zipfile.BadZipFile, KeyError, OSError) as e:
        logger.warning("Local spreadsheet parsing failed: %s", e)
        return ExtractionResult()
    try:
        if not workbook.worksheets:
            return ExtractionResult()
        return table_from_rows(workbook.worksheets[0].iter_rows(values_only=True))
    finally:
        workbook.close()


def parse_csv(text: str) -> ExtractionResult:
    return table_from_rows(csv.reader(io.StringIO(text)))


def table_as_csv(result: ExtractionResult) -> str:
    buffer = io.StringIO()
    writer = csv.DictWriter(buffer, fieldnames=result.headers)
    writer.writeheader()
    writer.writerows(result.rows)
    return buffer.getvalue()


def pdf_text(data: bytes) -> str:
    try:
        reader = PdfReader(io.BytesIO(data))
        return "\n".join(page.extract_text() or "" for page in reader.pages).strip()
    except (PdfReadError, ValueError, OSError) as e:
        logger.warning("Local PDF text extraction failed: %s", e)
        return ""


def decode_base64(content: str) -> tuple[bytes, str | None]:
    """Decode raw base64 or a data URL. Returns the bytes and the data URL's media type, if any."""
    media_type = None
    if content.startswith("data:") and "," in content:
        header, content = content.split(",", 1)
        media_type = header[5:].split(";", 1)[0] or None
    try:
        return base64.b64decode(content), media_type
    except (binascii.Error, ValueError) as e:
        raise ValueError("Invalid base64 file content") from e


def fetch_file(url: str) -> tuple[bytes, str]:
    with httpx.Client(timeout=15.0, follow_redirects=True) as client:
        response = client.get(url)
        response.raise_for_status()
        return response.content, response.headers.get("content-type", "")


def _from_bytes(data: bytes, file_name: str, file_type: str) -> ExtractionResult | ExtractionInput:
    """Either a finished local result or the input to send to the model."""
    if is_spreadsheet(file_name, file_type):
        result = parse_spreadsheet(data)
        if result.headers and result.rows:
            logger.info("Parsed spreadsheet %s locally: %s rows", file_name, len(result.rows))
            return result
        return ExtractionInput(
            file_name=file_name,
            text=f"[Excel file: {file_name}] - Please extract all tabular data from this spreadsheet.",
        )

    if is_csv(file_name, file_type):
        text = data.decode("utf-8-sig", errors="replace")
        result = parse_csv(text)
        if result.headers and result.rows:
            logger.info("Parsed CSV %s locally: %s rows", file_name, len(result.rows))
            return result
        return ExtractionInput(file_name=file_name, text=text)

    encoded = base64.b64encode(data).decode("ascii")
    if file_type == "application/pdf":
        text = pdf_text(data)
        if text:
            return ExtractionInput(file_name=file_name, text=text)
        return ExtractionInput(file_name=file_name, data_url=f"data:{file_type};base64,{encoded}")
    if file_type.startswith("image/"):
        return ExtractionInput(file_name=file_name, data_url=f"data:{file_type};base64,{encoded}")

    try:
        return ExtractionInput(file_name=file_name, text=data.decode("utf-8"))
    except UnicodeDecodeError:
        return ExtractionInput(file_name=file_name, text=f"[Binary content: {file_name}]")


def _from_url(url: str, file_name: str, file_type: str) -> ExtractionResult | ExtractionInput:
    try:
        data, content_type = fetch_file(url)
    except httpx.HTTPError as e:
        logger.warning("Could not fetch %s: %s", url, e)
        return ExtractionInput(file_name=file_name, text=f"[Could not fetch file content from: {url}]")

    content_type = content_type.split(";", 1)[0].strip().lower()
    detected = file_type or content_type
    if (
        is_spreadsheet(file_name, detected)
        or is_csv(file_name, detected)
        or detected == "application/pdf"
        or detected.startswith("image/")
    ):
        return _from_bytes(data, file_name, detected)
    if any(kind in content_type for kind in TEXT_CONTENT_TYPES):
        return ExtractionInput(file_name=file_name, text=data.decode("utf-8", errors="replace"))
    return ExtractionInput(file_name=file_name, text=f"[Binary file at: {url}]")


async def extract_file_data(
    request: FileExtractionRequest,
    agent: ExtractionAgent | None = None,
    *,
    session: Session | None = None,
    rate_limit_key: str | None = None,
    limit: int | None = None,
) -> dict[str, Any]:
    """
    Return ``{"headers": [...], "rows": [...]}`` (or the ``json_schema`` shape) for the file.

    Locally parsed tables never reach the model. With a ``session`` the model call
    goes through the response cache, and misses count against ``rate_limit_key``.
    """
    file_name = request.file_name or "file"
    file_type = (request.file_type or "").lower()

    if request.file_content:
        data, media_type = decode_base64(request.file_content)
        outcome = _from_bytes(data, file_name, file_type or (media_type or "").lower())
    elif request.file_url:
        outcome = _from_url(request.file_url, file_name, file_type)
    else:
        raise ValueError("No file content or URL provided")

    # A locally parsed table is only final when no custom schema was asked for.
    if isinstance(outcome, ExtractionResult):
        if request.json_schema is None:
            return outcome.model_dump()
        outcome = ExtractionInput(file_name=file_name, text=table_as_csv(outcome))

    if outcome.text:
        outcome.text = truncate(outcome.text)
    outcome.json_schema = request.json_schema

    agent = agent or ExtractionAgent()

    async def produce() -> dict[str, Any]:
        return (await agent.run(outcome)).model_dump()

    if session is None:
        result = await produce()
    else:
        system_prompt, user_prompt = agent.build_prompts(outcome)
        result, _ = await cached_structured(
            session,
            endpoint=agent.endpoint,
            model=agent.model_name,
            system_prompt=system_prompt,
            user_prompt=user_prompt,
            produce=produce,
            rate_limit_key=rate_limit_key,
            limit=limit,
        )
    logger.info(
        "Extracted %s headers and %s rows from %s",
        len(result.get("headers", [])),
        len(result.get("rows", [])),
        file_name,
    )
    return result
