from typing import Any, Optional
from pydantic import BaseModel
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    """Base for request/response bodies; the wire format is camelCase."""

    class Config:
        alias_generator = to_camel
        populate_by_name = True
        from_attributes = True


class ApiResponse(BaseModel):
    error: bool = False
    message: str
    data: Optional[Any] = None


def envelope(message: str, data: Any = None) -> dict:
    if isinstance(data, BaseModel):
        data = data.model_dump(by_alias=True, mode="json", exclude_none=True)
    body = {"error": False, "message": message}
    if data is not None:
        body["data"] = data
    return body
