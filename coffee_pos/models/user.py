from sqlalchemy import Column, Integer, String, Boolean, DateTime, CheckConstraint
from sqlalchemy.sql import func
from coffee_pos.db.database import Base


class UserRole:
    CASHIER = "cashier"
    MANAGER = "manager"
    ADMIN = "admin"

    ALL = (CASHIER, MANAGER, ADMIN)


class User(Base):
    """Staff account. Managed by user administration; read here for order ownership and reports."""
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, autoincrement=True)
    username = Column(String(50), nullable=False, unique=True)
    role = Column(String(20), nullable=False, default=UserRole.CASHIER)
    is_active = Column(Boolean, nullable=False, default=True)
    last_login_at = Column(DateTime(timezone=True))
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    __table_args__ = (
        CheckConstraint("role IN ('cashier', 'manager', 'admin')", name="user_role_valid"),
    )
