"""Read-only view of rental applications."""

from sqlalchemy import Column, Integer, String
from lander.database import Base


class ApartmentApplication(Base):
    """Represents a tenant's rental application for an apartment."""
    __tablename__ = "apartment_applications"

    id = Column(Integer, primary_key=True)
    tenant_id = Column(Integer, index=True)
    apartment_id = Column(Integer, index=True)
    status = Column(String)  # pending/approved/rejected
