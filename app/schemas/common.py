"""
Common Pydantic schemas
"""

from typing import Any, Dict, Optional
from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel

SCHEMA_VERSION = 1

class StandardResponse(BaseModel):
    """Standard API response"""
    success: bool
    message: str
    data: Optional[Any] = None

class ErrorResponse(BaseModel):
    """Error response schema"""
    success: bool = False
    message: str
    error_code: Optional[str] = None
    details: Optional[Any] = None

class CamelModel(BaseModel):
    """camelCase on the wire, snake_case in Python"""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

class DocumentModel(CamelModel):
    """Base for documents persisted in the document store.

    Unknown fields written by other collaborators are kept and written back
    untouched.
    """
    id: Optional[str] = None
    schema_version: int = SCHEMA_VERSION

    model_config = ConfigDict(extra="allow")

    @classmethod
    def from_document(cls, doc_id: str, data: Dict[str, Any]):
        payload = dict(data)
        payload.pop("id", None)
        return cls.model_validate({**payload, "id": doc_id})

    def to_document(self) -> Dict[str, Any]:
        return self.model_dump(by_alias=True, mode="json", exclude={"id"})

    def to_response(self) -> Dict[str, Any]:
        return self.model_dump(by_alias=True, mode="json")
