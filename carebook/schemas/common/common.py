# carebook/schemas/common.py
from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel
from typing import Any, Dict, Optional


class CamelModel(BaseModel):
    """Snake-case attributes, camelCase on the wire."""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, from_attributes=True)

    def to_wire(self) -> Dict[str, Any]:
        return self.model_dump(by_alias=True, mode="json")


class ErrorResponse(BaseModel):
    success: bool = False
    message: str
    data: Optional[Any] = None
    error: str


class Pagination(CamelModel):
    current_page: int
    total_pages: int
    total: int
    has_next_page: bool = False
    has_prev_page: bool = False
