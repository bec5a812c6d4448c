"""
Response Decoder
================
Turns the raw reply text into a validated BugReport.

Steps:
    1. Empty / whitespace reply            → EmptyResponseError
    2. Strip an optional ```json / ``` leading fence and trailing fence
    3. json.loads                          → ResponseDecodeError on failure
    4. Must be an object with all five fields as strings
                                           → ResponseDecodeError otherwise

No partial or defaulted report is ever returned, and field contents are not
judged here (a nonsense file_to_edit is the model's problem).
"""
import json
import logging
import re

from pydantic import ValidationError

from vibefix.core.errors import EmptyResponseError, ResponseDecodeError
from vibefix.models.bug_report import BugReport

logger = logging.getLogger(__name__)

_LEADING_FENCE_RE = re.compile(r"^```(?:json)?\s*", re.IGNORECASE)
_TRAILING_FENCE_RE = re.compile(r"\s*```$")


def strip_code_fences(text: str) -> str:
    """Remove a leading ``` or ```json fence and a trailing ``` fence."""
    cleaned = text.strip()
    cleaned = _LEADING_FENCE_RE.sub("", cleaned, count=1)
    cleaned = _TRAILING_FENCE_RE.sub("", cleaned, count=1)
    return cleaned.strip()


def _describe_validation_error(error: ValidationError) -> str:
    missing: list[str] = []
    blank: list[str] = []
    invalid: list[str] = []
    for err in error.errors():
        field = ".".join(str(p) for p in err.get("loc", ())) or "<root>"
        if err.get("type") == "missing":
            missing.append(field)
        elif err.get("type") == "string_too_short":
            blank.append(field)
        else:
            invalid.append(field)
    details: list[str] = []
    if missing:
        details.append(f"missing required fields: {', '.join(missing)}")
    if blank:
        details.append(f"fields must not be empty: {', '.join(blank)}")
    if invalid:
        details.append(f"fields are not strings: {', '.join(invalid)}")
    return "; ".join(details) or str(error)


def decode_bug_report(raw: str) -> BugReport:
    """
    Parse and validate a reply from the model.

    Parameters
    ----------
    raw : str
        Raw text reply.

    Returns
    -------
    BugReport
        A complete report.

    Raises
    ------
    EmptyResponseError
        The reply had no text.
    ResponseDecodeError
        The text is not JSON, not an object, or lacks a required string field.
    """
    if not raw or not raw.strip():
        raise EmptyResponseError("No response received from Gemini.")

    cleaned = strip_code_fences(raw)

    try:
        data = json.loads(cleaned)
    except (json.JSONDecodeError, ValueError) as e:
        logger.warning("Model reply is not valid JSON: %s", e)
        raise ResponseDecodeError(f"Response is not valid JSON: {e}") from e

    if not isinstance(data, dict):
        raise ResponseDecodeError(
            f"Expected a JSON object, got {type(data).__name__}"
        )

    try:
        return BugReport.model_validate(data)
    except ValidationError as e:
        detail = _describe_validation_error(e)
        logger.warning("Model reply failed validation: %s", detail)
        raise ResponseDecodeError(f"Response does not match the report schema: {detail}") from e
