"""
Property Model

Map-pinned property records shared by every connected viewer.
"""
import json
from typing import List, Optional

from sqlalchemy import Column, Integer, String, Float, DateTime, Text, ForeignKey

from estatemap.core.database import Base, utcnow


class Property(Base):
    """Property pinned on the shared map"""
    __tablename__ = 'properties'

    id = Column(Integer, primary_key=True, index=True)

    # ==================== LOCATION ====================
    address = Column(Text, nullable=False)
    # JSON text "[lat, lng]"
    coordinates_json = Column('coordinates', Text, nullable=True)

    # ==================== DETAILS ====================
    zoning = Column(String(100), default='Residential')
    value = Column(Float, default=200000)
    notes = Column(Text, default='')

    # ==================== FINANCIALS ====================
    tax_value = Column(Float)
    assessed_value = Column(Float)
    cap_rate = Column(Float)
    monthly_payment = Column(Float)

    # ==================== VOTES ====================
    thumbs_up = Column(Integer, nullable=False, default=0)
    thumbs_down = Column(Integer, nullable=False, default=0)

    # ==================== AUTHORSHIP ====================
    created_by = Column(Integer, ForeignKey('users.id'), nullable=True)
    created_by_name = Column(String(100))

    # Bumped by every edit, votes excluded
    version = Column(Integer, nullable=False, default=1)

    # Timestamps
    created_at = Column(DateTime, default=utcnow)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow)

    @property
    def coordinates(self) -> Optional[List[float]]:
        """Get coordinates as [lat, lng]"""
        return decode_coordinates(self.coordinates_json)

    @coordinates.setter
    def coordinates(self, pair: Optional[List[float]]):
        self.coordinates_json = encode_coordinates(pair)

    @property
    def last_updated(self):
        return self.updated_at or self.created_at

    def __repr__(self) -> str:
        return f"<Property {self.id}: {self.address}>"


def encode_coordinates(pair: Optional[List[float]]) -> Optional[str]:
    if pair is None:
        return None
    return json.dumps([float(pair[0]), float(pair[1])])


def decode_coordinates(raw: Optional[str]) -> Optional[List[float]]:
    if not raw:
        return None
    return [float(n) for n in json.loads(raw)]
