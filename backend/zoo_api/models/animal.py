"""
Animal record, referenced by attractions it performs in.
"""

from sqlalchemy import Column, String

from zoo_api.db.base import Base


class Animal(Base):
    __tablename__ = "hewan"

    id = Column(String(36), primary_key=True)
    nama = Column(String(100), nullable=True)
    spesies = Column(String(100), nullable=False)

    def __repr__(self) -> str:
        return f"<Animal(id={self.id}, nama={self.nama})>"
