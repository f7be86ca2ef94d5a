from pydantic import BaseModel, Field
from typing import Optional, List, Dict, Any
from datetime import datetime


class SystemLogResponse(BaseModel):
    id: int
    level: str = Field(..., example="info")
    category: str = Field(..., example="order")
    message: str = Field(..., example="Order #42 created with 2 items for 7.00")
    details: Optional[Dict[str, Any]] = None
    user_id: Optional[int] = None
    created_at: datetime

    class Config:
        from_attributes = True


class LogPagination(BaseModel):
    page: int
    limit: int
    total: int
    pages: int


class LogListResponse(BaseModel):
    logs: List[SystemLogResponse]
    pagination: LogPagination


class CategoryCount(BaseModel):
    category: str
    count: int


class LevelCount(BaseModel):
    level: str
    count: int


class LogSummaryResponse(BaseModel):
    categories: List[CategoryCount]
    levels: List[LevelCount]
