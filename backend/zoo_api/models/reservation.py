"""
Visitor reservation for a facility on a given day.

Key design decisions:
- Identity is (visitor, facility, visit date) for create, edit and cancel alike
- Only active ('Terjadwal') rows count toward the facility's daily capacity
- Cancel is a hard delete; edit may still flip status to 'Dibatalkan'
"""

from sqlalchemy import Column, Integer, String, Date, ForeignKey, CheckConstraint, Index

from zoo_api.db.base import Base, TimestampMixin

STATUS_ACTIVE = "Terjadwal"
STATUS_CANCELLED = "Dibatalkan"

RESERVATION_STATUSES = (STATUS_ACTIVE, STATUS_CANCELLED)


class Reservation(Base, TimestampMixin):
    __tablename__ = "reservasi"

    username_p = Column(String(50), ForeignKey("pengguna.username"), primary_key=True)
    nama_fasilitas = Column(String(50), ForeignKey("fasilitas.nama"), primary_key=True)
    tanggal_kunjungan = Column(Date, primary_key=True)
    jumlah_tiket = Column(Integer, nullable=False)
    status = Column(String(20), nullable=False, default=STATUS_ACTIVE)

    __table_args__ = (
        CheckConstraint("jumlah_tiket > 0", name="check_jumlah_tiket_positive"),
        CheckConstraint("status IN ('Terjadwal', 'Dibatalkan')", name="check_reservasi_status"),
        # Covers the capacity sum: WHERE nama_fasilitas = ? AND tanggal_kunjungan = ?
        Index("ix_reservasi_fasilitas_tanggal", "nama_fasilitas", "tanggal_kunjungan"),
    )

    @property
    def is_active(self) -> bool:
        return self.status == STATUS_ACTIVE

    def __repr__(self) -> str:
        return (
            f"<Reservation(user={self.username_p}, fasilitas={self.nama_fasilitas}, "
            f"tanggal={self.tanggal_kunjungan}, tiket={self.jumlah_tiket}, status={self.status})>"
        )
