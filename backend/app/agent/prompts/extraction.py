EXTRACTION_SYSTEM_PROMPT = """You are a data extraction assistant. Extract structured tabular data from images and documents.
Return a JSON object with:
- "headers": array of column names
- "rows": array of objects, one per record, keyed by the headers

Rules:
- Preserve the original values; do not translate or summarise them
- Use the first row or the most obvious labels as headers
- Skip decorative text, page numbers, and empty rows
- If no table is present, return {"headers": [], "rows": []}"""

EXTRACTION_TEXT_PROMPT = "Extract all tabular data from this file ({file_name}):\n\n{content}"

EXTRACTION_SCHEMA_PROMPT = "Extract data matching this JSON schema:\n{schema}\n\nFrom this file ({file_name}):\n\n{content}"

EXTRACTION_FILE_PROMPT = "Extract all tabular data from the attached file ({file_name})."
