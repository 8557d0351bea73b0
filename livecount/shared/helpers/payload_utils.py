"""
Typed validation of inbound JSON payloads
"""

import json
from dataclasses import dataclass, field
from typing import Any, Dict, Generic, List, Optional, Type, TypeVar

from pydantic import BaseModel
from pydantic import ValidationError as PydanticValidationError

T = TypeVar("T", bound=BaseModel)


@dataclass
class ValidationResult(Generic[T]):
    """Either a validated model or a list of structured field errors"""

    value: Optional[T] = None
    errors: List[Dict[str, Any]] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return self.value is not None and not self.errors


def decode_json_body(body: bytes) -> ValidationResult:
    """Decode a request body regardless of content type (beacons send text/plain)"""
    try:
        return ValidationResult(value=json.loads(body or b"null"))
    except (json.JSONDecodeError, UnicodeDecodeError) as e:
        return ValidationResult(
            errors=[{"loc": "body", "msg": f"Invalid JSON: {e}", "type": "json_invalid"}]
        )


def validate_payload(model: Type[T], raw: Any) -> ValidationResult[T]:
    """Validate raw decoded JSON against a schema without raising"""
    if not isinstance(raw, dict):
        return ValidationResult(
            errors=[{"loc": "body", "msg": "Expected a JSON object", "type": "dict_type"}]
        )

    try:
        return ValidationResult(value=model.model_validate(raw))
    except PydanticValidationError as e:
        return ValidationResult(
            errors=[
                {
                    "loc": ".".join(str(part) for part in err["loc"]) or "body",
                    "msg": err["msg"],
                    "type": err["type"],
                }
                for err in e.errors()
            ]
        )
