from typing import Any, Generic, Optional, TypeVar

from pydantic import BaseModel

T = TypeVar("T")


class ApiResponse(BaseModel, Generic[T]):
    """Общий конверт ответа API"""

    success: bool = True
    message: Optional[str] = None
    data: Optional[T] = None


class Pagination(BaseModel):
    page: int
    limit: int
    total: int
    pages: int


def paginate(page: int, limit: int, total: int) -> Pagination:
    return Pagination(page=page, limit=limit, total=total, pages=(total + limit - 1) // limit if limit else 0)


def ok(data: Any = None, message: Optional[str] = None) -> dict:
    return {"success": True, "message": message, "data": data}
