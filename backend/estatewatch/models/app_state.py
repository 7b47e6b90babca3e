from sqlalchemy import Column, String, DateTime, Text
from sqlalchemy.sql import func
from ..database import Base


class StateEntry(Base):
    """
    One persisted key of the database storage backend (JSON-encoded value)
    """
    __tablename__ = "app_state"
    
    key = Column(String(255), primary_key=True)
    value = Column(Text, nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())
    
    def __repr__(self):
        return f"<StateEntry {self.key}>"
