"""Fail-open validation of payloads against declared shapes.

A shape is either a pydantic model class (protocol results) or a JSON Schema
mapping (elicitation ``requestedSchema``). Validation answers accept/reject
and never raises into callers: anything that goes wrong inside the validator
itself counts as accepted.
"""

from collections.abc import Mapping
from typing import Any

import pydantic
from jsonschema import SchemaError, ValidationError, validate

from mcp_elicit.shared.logging import get_logger

logger = get_logger(__name__)

Shape = type[pydantic.BaseModel] | Mapping[str, Any]


class ResultValidator:
    def validate(self, shape: Shape | None, value: Any) -> bool:
        """Return True if ``value`` conforms to ``shape``.

        A missing shape, a malformed schema or an internal validator failure
        all yield True.
        """
        if shape is None:
            return True
        try:
            if isinstance(shape, type) and issubclass(shape, pydantic.BaseModel):
                shape.model_validate(value)
            else:
                validate(value, dict(shape))
        except (pydantic.ValidationError, ValidationError) as e:
            logger.debug(f"Payload rejected by shape {_describe(shape)}: {e}")
            return False
        except SchemaError as e:
            logger.warning(f"Invalid schema {_describe(shape)}, accepting payload: {e}")
            return True
        except Exception as e:
            logger.warning(f"Validator failed on shape {_describe(shape)}, accepting payload: {e}")
            return True
        return True


def _describe(shape: Shape) -> str:
    if isinstance(shape, type):
        return shape.__name__
    return str(shape.get("title", "<schema>"))
