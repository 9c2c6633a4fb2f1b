"""Pulling JSON objects out of free-form model responses."""

from __future__ import annotations

import json
import logging
import re
from typing import Any, Mapping

import jsonschema

from .errors import UpstreamFailure

logger = logging.getLogger(__name__)

# Greedy: first "{" through last "}", so prose or code fences around the object are ignored.
_JSON_OBJECT = re.compile(r"\{[\s\S]*\}")


def extract_json_object(text: str) -> dict[str, Any] | None:
    match = _JSON_OBJECT.search(text or "")
    if match is None:
        return None
    try:
        parsed = json.loads(match.group(0))
    except json.JSONDecodeError:
        logger.debug("Failed to parse JSON object from response (truncated): %s", text[:200])
        return None
    if isinstance(parsed, dict):
        return parsed
    return None


def require_json_object(
    text: str,
    *,
    what: str,
    schema: Mapping[str, Any] | None = None,
) -> dict[str, Any]:
    """Like :func:`extract_json_object`, raising :class:`UpstreamFailure` instead of returning None.

    When ``schema`` is given the object is also checked with ``jsonschema``.
    """

    payload = extract_json_object(text)
    if payload is None:
        raise UpstreamFailure(
            f"Model returned no parseable JSON object for {what}",
            error_type="unparseable_response",
        )
    if schema is not None:
        try:
            jsonschema.validate(instance=payload, schema=schema)
        except jsonschema.ValidationError as exc:
            raise UpstreamFailure(
                f"{what} response failed schema validation: {exc.message}",
                error_type="schema_violation",
            ) from exc
    return payload


__all__ = ["extract_json_object", "require_json_object"]
