"""Parsing of model output into an ``Extraction``."""

import json
import re
from datetime import datetime
from typing import Any, Dict, List

from dateutil import parser as date_parser
from pydantic import ValidationError as SchemaValidationError

from ...modules.common.exceptions import AnalysisError
from ...modules.document.models import DocumentType
from ...modules.entity.models import EntityType
from ...modules.entity.schemas import EntitySpec
from ..logging import get_logger
from .schemas import Extraction

logger = get_logger(__name__)

_FENCE_START = re.compile(r"^```(?:json)?\s*", re.IGNORECASE)
_FENCE_END = re.compile(r"\s*```$")
_JSON_OBJECT = re.compile(r"\{[\s\S]*\}")
_ISO_PARTIAL_DATE = re.compile(r"^\d{4}(-\d{2})?(-\d{2})?$")

# Missing day or month parts default to the first.
_DATE_DEFAULT = datetime(1900, 1, 1)

DOCUMENT_TYPES = [t.value for t in DocumentType]
ENTITY_TYPES = [t.value for t in EntityType]


def normalize_date(text: str) -> str:
    """``YYYY``, ``YYYY-MM`` and ``YYYY-MM-DD`` are kept, other parseable dates become
    ISO dates, anything else is returned unchanged.

    >>> normalize_date("1944-08")
    '1944-08'
    >>> normalize_date("6 June 1944")
    '1944-06-06'
    >>> normalize_date("spring of the war")
    'spring of the war'
    """
    text = text.strip()
    if _ISO_PARTIAL_DATE.match(text):
        return text
    try:
        return date_parser.parse(text, default=_DATE_DEFAULT).date().isoformat()
    except (ValueError, OverflowError):
        return text


def _validate(data: Any) -> List[str]:
    if not isinstance(data, dict):
        return ["response must be a JSON object"]

    errors = []
    for field in ("title", "content"):
        value = data.get(field)
        if not isinstance(value, str) or not value.strip():
            errors.append(f"{field} must be a non-empty string")

    document_type = data.get("document_type")
    if not isinstance(document_type, str) or not document_type:
        errors.append("document_type must be a non-empty string")
    elif document_type not in DOCUMENT_TYPES:
        errors.append(f"document_type must be one of: {', '.join(DOCUMENT_TYPES)}")

    entities = data.get("entities")
    if not isinstance(entities, list):
        errors.append("entities must be an array")
        return errors

    for index, entity in enumerate(entities):
        if not isinstance(entity, dict):
            errors.append(f"entities[{index}] must be an object")
            continue
        name = entity.get("name")
        if not isinstance(name, str) or not name.strip():
            errors.append(f"entities[{index}].name must be a non-empty string")
        entity_type = entity.get("type")
        if not isinstance(entity_type, str) or not entity_type:
            errors.append(f"entities[{index}].type must be a non-empty string")
        elif entity_type not in ENTITY_TYPES:
            errors.append(f"entities[{index}].type must be one of: {', '.join(ENTITY_TYPES)}")
    return errors


def _entity(raw: Dict[str, Any]) -> EntitySpec:
    name = raw["name"].strip()
    entity_type = EntityType(raw["type"])
    date = normalize_date(name) if entity_type == EntityType.DATE else None
    return EntitySpec(name=name, type=entity_type, date=date)


def parse_analysis_response(text: str) -> Extraction:
    """Turn raw model output into an ``Extraction``.

    Markdown code fences are stripped and the outermost ``{...}`` is parsed.
    The result is all-or-nothing: any structural problem fails the whole
    response.

    Raises:
        AnalysisError: No JSON object, invalid JSON, or fields that fail validation
    """
    cleaned = _FENCE_END.sub("", _FENCE_START.sub("", (text or "").strip()))
    match = _JSON_OBJECT.search(cleaned)
    if match is None:
        raise AnalysisError("Failed to parse AI analysis: no JSON object found in response")

    try:
        data = json.loads(match.group(0))
    except json.JSONDecodeError as e:
        raise AnalysisError(f"Failed to parse AI analysis: {e}") from e

    errors = _validate(data)
    if errors:
        logger.warning("Analysis response rejected", extra={"errors": errors})
        raise AnalysisError(f"Invalid AI response structure: {'; '.join(errors)}")

    try:
        return Extraction(
            title=data["title"].strip(),
            content=data["content"].strip(),
            document_type=DocumentType(data["document_type"]),
            entities=[_entity(e) for e in data["entities"]],
        )
    except SchemaValidationError as e:
        raise AnalysisError(f"Invalid AI response structure: {e.error_count()} invalid field(s)") from e
