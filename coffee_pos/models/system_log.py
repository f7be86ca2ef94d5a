from sqlalchemy import Column, Integer, String, Text, DateTime, JSON, Index
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.sql import func
from coffee_pos.db.database import Base


class LogLevel:
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"

    ALL = (INFO, WARNING, ERROR)


class LogCategory:
    AUTH = "auth"
    ORDER = "order"
    INVENTORY = "inventory"
    PRODUCT = "product"
    SYSTEM = "system"

    ALL = (AUTH, ORDER, INVENTORY, PRODUCT, SYSTEM)


class SystemLog(Base):
    """Append-only audit record"""
    __tablename__ = "system_logs"

    id = Column(Integer, primary_key=True, autoincrement=True)
    level = Column(String(10), nullable=False)
    category = Column(String(20), nullable=False)
    message = Column(Text, nullable=False)
    details = Column(JSON().with_variant(JSONB(), "postgresql"))
    user_id = Column(Integer)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    __table_args__ = (
        Index("idx_system_logs_created", "created_at"),
        Index("idx_system_logs_category_level", "category", "level"),
    )
