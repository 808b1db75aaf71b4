"""Material model."""
from sqlalchemy import Column, Integer, String, DateTime, Float
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from estimator.database import Base


class Material(Base):
    """Catalog material priced per storing unit.
    
    consuming_rate is derived from purchasing_amount / conversion_unit and
    is only ever written together with those two fields.
    """
    __tablename__ = "materials"
    
    id = Column(Integer, primary_key=True, index=True)
    item_code = Column(String(50), unique=True, index=True, nullable=False)
    item_name = Column(String(200), nullable=False)
    storing_uom = Column(String(50), nullable=False)
    consuming_uom = Column(String(50), nullable=False)
    purchasing_amount = Column(Float, nullable=False, default=0.0)
    conversion_unit = Column(Float, nullable=False, default=1.0)
    consuming_rate = Column(Float, nullable=False, default=0.0)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())
    
    # Relationships
    quotation_items = relationship("QuotationItem", back_populates="material")
    
    @property
    def usage_count(self) -> int:
        return len(self.quotation_items)
