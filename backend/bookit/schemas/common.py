"""
Shared response envelope and money type.

Every endpoint answers with `{success, data, message}`; list endpoints add
`count` and the experience listing adds `pagination`.
"""

from decimal import Decimal
from typing import Annotated, Generic, Optional, TypeVar

from pydantic import BaseModel, PlainSerializer

# Decimals stay exact internally and render as JSON numbers
Money = Annotated[Decimal, PlainSerializer(float, return_type=float, when_used="json")]

DataT = TypeVar("DataT")


class Envelope(BaseModel, Generic[DataT]):
    success: bool = True
    data: DataT
    message: Optional[str] = None


class ListEnvelope(Envelope[list[DataT]], Generic[DataT]):
    count: int


class Pagination(BaseModel):
    limit: int
    offset: int
    count: int


class PageEnvelope(Envelope[list[DataT]], Generic[DataT]):
    pagination: Pagination
