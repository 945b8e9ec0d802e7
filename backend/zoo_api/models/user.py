"""
Zoo account with its role stored on the row.

The role column is filled when the account is created, so resolving a
caller's role is a single primary-key lookup instead of probing one table
per staff type.
"""

from sqlalchemy import Column, String, CheckConstraint

from zoo_api.db.base import Base, TimestampMixin

ROLE_VISITOR = "pengunjung"
ROLE_VETERINARIAN = "dokter_hewan"
ROLE_KEEPER = "penjaga_hewan"
ROLE_TRAINER = "pelatih_hewan"
ROLE_ADMIN = "staf_admin"

ROLES = (ROLE_VISITOR, ROLE_VETERINARIAN, ROLE_KEEPER, ROLE_TRAINER, ROLE_ADMIN)


class User(Base, TimestampMixin):
    __tablename__ = "pengguna"

    username = Column(String(50), primary_key=True)
    email = Column(String(100), unique=True, index=True, nullable=False)
    nama_depan = Column(String(50), nullable=False)
    nama_belakang = Column(String(50), nullable=True)
    role = Column(String(20), nullable=False, index=True)

    __table_args__ = (
        CheckConstraint(
            "role IN ('pengunjung', 'dokter_hewan', 'penjaga_hewan', 'pelatih_hewan', 'staf_admin')",
            name="check_pengguna_role",
        ),
    )

    @property
    def nama_lengkap(self) -> str:
        return " ".join(part for part in (self.nama_depan, self.nama_belakang) if part)

    def __repr__(self) -> str:
        return f"<User(username={self.username}, role={self.role})>"
