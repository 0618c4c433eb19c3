"""Shared schema base and the response envelope."""

from typing import Any

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    """Snake-case attributes, camelCase on the wire (either accepted on input)."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
    )

    def to_json(self) -> dict:
        return self.model_dump(mode="json", by_alias=True)


def envelope(data: Any = None, message: str | None = None) -> dict:
    """Successful response body: ``{success, message?, data?}``."""
    body: dict[str, Any] = {"success": True}
    if message is not None:
        body["message"] = message
    if data is not None:
        body["data"] = data
    return body


def error_envelope(
    message: str,
    *,
    errors: list | None = None,
    error: Any = None,
    **extra: Any,
) -> dict:
    body: dict[str, Any] = {"success": False, "message": message}
    if errors:
        body["errors"] = errors
    if error is not None:
        body["error"] = error
    body.update(extra)
    return body
