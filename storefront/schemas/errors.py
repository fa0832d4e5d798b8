"""Error response schema and conversion of pydantic errors to itemized messages."""

from collections.abc import Sequence
from typing import Any, TypeVar

import pydantic
from pydantic import BaseModel, Field

from storefront.core.errors import ValidationError

ModelT = TypeVar("ModelT", bound=BaseModel)

_VALUE_ERROR_PREFIX = "Value error, "


class ErrorItem(BaseModel):
    msg: str
    param: str | None = None


class ErrorResponse(BaseModel):
    """Body of every non-2xx response."""

    errors: list[ErrorItem] = Field(default_factory=list)


def itemize_errors(errors: Sequence[Any]) -> list[dict[str, Any]]:
    """
    Turn pydantic/FastAPI error dicts into ``[{"msg", "param"}]``.

    The submitted input is never echoed back (it may be a password).
    """
    items: list[dict[str, Any]] = []
    for err in errors:
        msg = str(err.get("msg", "Invalid value"))
        if msg.startswith(_VALUE_ERROR_PREFIX):
            msg = msg[len(_VALUE_ERROR_PREFIX):]
        loc = err.get("loc") or ()
        param = str(loc[-1]) if loc else None
        items.append({"msg": msg, "param": param})
    return items


def parse_request(model: type[ModelT], data: Any) -> ModelT:
    """Validate raw input against a request schema; raise ValidationError on failure."""
    try:
        return model.model_validate(data)
    except pydantic.ValidationError as e:
        items = itemize_errors(e.errors())
        raise ValidationError(items[0]["msg"], errors=items) from e
