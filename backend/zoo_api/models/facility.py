"""
Bookable facilities.

A Facility row carries the schedule and the per-day maximum capacity; an
Attraction or Ride row with the same name extends it 1:1. Attractions also
own trainer assignments and animal participation rows.

Key design decisions:
- The facility row is the lock target for every reservation write against it
  (SELECT ... FOR UPDATE), so it is the aggregate root for capacity.
- Extension rows reference the facility by name and cannot exist without it.
"""

from sqlalchemy import Column, Integer, String, Text, DateTime, ForeignKey, CheckConstraint

from zoo_api.db.base import Base, TimestampMixin

FACILITY_ATTRACTION = "atraksi"
FACILITY_RIDE = "wahana"


class Facility(Base, TimestampMixin):
    __tablename__ = "fasilitas"

    nama = Column(String(50), primary_key=True)
    jadwal = Column(DateTime, nullable=False)
    kapasitas_max = Column(Integer, nullable=False)

    __table_args__ = (
        CheckConstraint("kapasitas_max > 0", name="check_kapasitas_max_positive"),
    )

    def __repr__(self) -> str:
        return f"<Facility(nama={self.nama}, kapasitas_max={self.kapasitas_max})>"


class Attraction(Base):
    __tablename__ = "atraksi"

    nama_atraksi = Column(String(50), ForeignKey("fasilitas.nama"), primary_key=True)
    lokasi = Column(String(100), nullable=False)

    def __repr__(self) -> str:
        return f"<Attraction(nama={self.nama_atraksi}, lokasi={self.lokasi})>"


class Ride(Base):
    __tablename__ = "wahana"

    nama_wahana = Column(String(50), ForeignKey("fasilitas.nama"), primary_key=True)
    peraturan = Column(Text, nullable=False)

    def __repr__(self) -> str:
        return f"<Ride(nama={self.nama_wahana})>"


class TrainerAssignment(Base):
    __tablename__ = "jadwal_penugasan"

    username_lh = Column(String(50), ForeignKey("pengguna.username"), primary_key=True)
    nama_atraksi = Column(String(50), ForeignKey("atraksi.nama_atraksi"), primary_key=True)
    tgl_penugasan = Column(DateTime, primary_key=True)


class Participation(Base):
    __tablename__ = "berpartisipasi"

    nama_fasilitas = Column(String(50), ForeignKey("fasilitas.nama"), primary_key=True)
    id_hewan = Column(String(36), ForeignKey("hewan.id"), primary_key=True)
