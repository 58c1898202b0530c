"""Read-only view of the listings catalogue."""

from sqlalchemy import Column, Integer, String
from lander.database import Base


class Apartment(Base):
    """Represents a listed apartment and its owning landlord."""
    __tablename__ = "apartments"

    id = Column(Integer, primary_key=True)
    landlord_id = Column(Integer, index=True)
    title = Column(String)
    address = Column(String)
