"""Split a dual-block model response into the Markdown report and the JSON data."""

import json
import logging
import re
from typing import Any, Dict

from .models import GradingResult

LOG = logging.getLogger(__name__)

# Tolerates extra whitespace and letter case inside the markers
_REPORT_MARKER = r"===\s*\(1\)\s*MARKDOWN\s+REPORT\s*==="
_DATA_MARKER = r"===\s*\(2\)\s*JSON\s+DATA\s*==="

REPORT_PATTERN = re.compile(_REPORT_MARKER + r"\s*(.*?)\s*" + _DATA_MARKER, re.DOTALL | re.IGNORECASE)
DATA_PATTERN = re.compile(_DATA_MARKER + r"\s*(.*)", re.DOTALL | re.IGNORECASE)
FENCE_PATTERN = re.compile(r"^```[\w+-]*[ \t]*\n?(.*?)\n?[ \t]*```$", re.DOTALL)


def strip_code_fence(segment: str) -> str:
    """Remove an enclosing ```json ... ``` fence, if there is one."""
    segment = segment.strip()
    match = FENCE_PATTERN.match(segment)
    if match:
        return match.group(1).strip()
    return segment


def decode_structured_data(segment: str) -> Dict[str, Any]:
    """
    Decode the JSON block, returning an empty dict if it is unusable.

    The block must be one JSON object once the code fence is removed; any text
    before or after it makes the whole block invalid.
    """
    cleaned = strip_code_fence(segment)
    if not cleaned:
        LOG.warning("JSON data block is empty")
        return {}

    try:
        data = json.loads(cleaned)
    except json.JSONDecodeError as e:
        LOG.warning(f"Failed to parse JSON part of response: {e}")
        return {}

    if not isinstance(data, dict):
        LOG.warning(f"JSON data block is a {type(data).__name__}, expected an object")
        return {}
    return data


def parse_response(text: str) -> GradingResult:
    """
    Parse one model response.

    The report is the text between the report marker and the data marker. If the
    markers are missing the whole response becomes the report, so a malformed answer
    is still readable. The JSON block after the data marker becomes the structured
    data, or an empty dict if it is missing or malformed.

    Args:
        text: Raw response text

    Returns:
        GradingResult with report_text, structured_data and raw_response_text
    """
    report_match = REPORT_PATTERN.search(text)
    if report_match:
        report_text = report_match.group(1).strip()
    else:
        LOG.warning("Response has no report block, using the full response as the report")
        report_text = text

    data_match = DATA_PATTERN.search(text)
    if data_match:
        structured_data = decode_structured_data(data_match.group(1))
    else:
        LOG.warning("Response has no JSON data block")
        structured_data = {}

    return GradingResult(
        report_text=report_text,
        structured_data=structured_data,
        raw_response_text=text,
    )
