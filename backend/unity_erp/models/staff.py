"""
Staff model
"""
from sqlalchemy import Column, Integer, String, Boolean

from unity_erp.db.base import Base


class Staff(Base):
    """Staff member who can issue stock - matches staff table"""
    __tablename__ = "staff"

    id = Column(Integer, primary_key=True, index=True)
    first_name = Column(String(100), nullable=False)
    last_name = Column(String(100), nullable=True)
    is_active = Column(Boolean, default=True, nullable=False)

    @property
    def full_name(self) -> str:
        return " ".join(part for part in (self.first_name, self.last_name) if part)

    def __repr__(self):
        return f"<Staff {self.full_name}>"
