"""
Structured output: validate the final reply against the response schema,
then map the validated JSON into the caller's type.
"""

import json
import re
from typing import Any, Optional, TypeVar

from jsonschema import Draft202012Validator
from pydantic import TypeAdapter, ValidationError

from agentloop.errors import DeserializationError, StructuredOutputError
from agentloop.model.types import Message

T = TypeVar("T")

_FENCE_RE = re.compile(r"^```(?:json)?\s*(.*?)\s*```$", re.DOTALL)


def _unfence(content: str) -> str:
    content = content.strip()
    match = _FENCE_RE.match(content)
    return match.group(1) if match else content


def parse_structured_output(
    message: Message, schema: Optional[dict[str, Any]]
) -> Any:
    """
    Parse the message content as JSON and check it against ``schema``.

    Args:
        message: Terminal assistant message
        schema: JSON schema, or None to only require valid JSON

    Returns:
        The parsed JSON value

    Raises:
        StructuredOutputError: not JSON, or not conforming to the schema
    """
    content = _unfence(message.content or "")
    try:
        value = json.loads(content)
    except json.JSONDecodeError as e:
        raise StructuredOutputError(
            f"Reply is not valid JSON: {e.msg}", content=content
        ) from e

    if schema is None:
        return value

    errors = sorted(
        Draft202012Validator(schema).iter_errors(value),
        key=lambda err: [str(p) for p in err.absolute_path],
    )
    if errors:
        first = errors[0]
        location = "/".join(str(p) for p in first.absolute_path) or "<root>"
        raise StructuredOutputError(
            f"Reply does not match the response schema at {location}: {first.message}",
            content=content,
            violations=[err.message for err in errors],
        )
    return value


def map_structured_output(value: Any, output_type: Optional[type[T]]) -> Any:
    """Populate ``output_type`` from schema-valid JSON. None returns the JSON value."""
    if output_type is None:
        return value
    try:
        return TypeAdapter(output_type).validate_python(value)
    except ValidationError as e:
        raise DeserializationError(
            f"Cannot map reply into {getattr(output_type, '__name__', output_type)}: "
            f"{e.error_count()} error(s)",
            details=e.errors(include_url=False),
        ) from e
