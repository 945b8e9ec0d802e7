"""Zoo reservation schema: accounts, animals, facilities, attractions, rides,
trainer assignments, animal participation and reservations.

Revision ID: 001
Revises: None
Create Date: 2026-10-19
"""
from typing import Sequence, Union
from alembic import op
import sqlalchemy as sa

revision: str = "001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _timestamps() -> list:
    return [
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
    ]


def upgrade() -> None:
    op.create_table(
        "pengguna",
        sa.Column("username", sa.String(50), primary_key=True),
        sa.Column("email", sa.String(100), nullable=False),
        sa.Column("nama_depan", sa.String(50), nullable=False),
        sa.Column("nama_belakang", sa.String(50), nullable=True),
        sa.Column("role", sa.String(20), nullable=False),
        *_timestamps(),
        sa.CheckConstraint(
            "role IN ('pengunjung', 'dokter_hewan', 'penjaga_hewan', 'pelatih_hewan', 'staf_admin')",
            name="check_pengguna_role",
        ),
    )
    op.create_index("ix_pengguna_email", "pengguna", ["email"], unique=True)
    op.create_index("ix_pengguna_role", "pengguna", ["role"])

    op.create_table(
        "hewan",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column("nama", sa.String(100), nullable=True),
        sa.Column("spesies", sa.String(100), nullable=False),
    )

    op.create_table(
        "fasilitas",
        sa.Column("nama", sa.String(50), primary_key=True),
        sa.Column("jadwal", sa.DateTime(), nullable=False),
        sa.Column("kapasitas_max", sa.Integer(), nullable=False),
        *_timestamps(),
        sa.CheckConstraint("kapasitas_max > 0", name="check_kapasitas_max_positive"),
    )

    op.create_table(
        "atraksi",
        sa.Column("nama_atraksi", sa.String(50), sa.ForeignKey("fasilitas.nama"), primary_key=True),
        sa.Column("lokasi", sa.String(100), nullable=False),
    )

    op.create_table(
        "wahana",
        sa.Column("nama_wahana", sa.String(50), sa.ForeignKey("fasilitas.nama"), primary_key=True),
        sa.Column("peraturan", sa.Text(), nullable=False),
    )

    op.create_table(
        "jadwal_penugasan",
        sa.Column("username_lh", sa.String(50), sa.ForeignKey("pengguna.username"), primary_key=True),
        sa.Column("nama_atraksi", sa.String(50), sa.ForeignKey("atraksi.nama_atraksi"), primary_key=True),
        sa.Column("tgl_penugasan", sa.DateTime(), primary_key=True),
    )

    op.create_table(
        "berpartisipasi",
        sa.Column("nama_fasilitas", sa.String(50), sa.ForeignKey("fasilitas.nama"), primary_key=True),
        sa.Column("id_hewan", sa.String(36), sa.ForeignKey("hewan.id"), primary_key=True),
    )

    op.create_table(
        "reservasi",
        sa.Column("username_p", sa.String(50), sa.ForeignKey("pengguna.username"), primary_key=True),
        sa.Column("nama_fasilitas", sa.String(50), sa.ForeignKey("fasilitas.nama"), primary_key=True),
        sa.Column("tanggal_kunjungan", sa.Date(), primary_key=True),
        sa.Column("jumlah_tiket", sa.Integer(), nullable=False),
        sa.Column("status", sa.String(20), nullable=False, server_default=sa.text("'Terjadwal'")),
        *_timestamps(),
        sa.CheckConstraint("jumlah_tiket > 0", name="check_jumlah_tiket_positive"),
        sa.CheckConstraint("status IN ('Terjadwal', 'Dibatalkan')", name="check_reservasi_status"),
    )
    # The capacity sum filters on exactly these two columns for every booking
    op.create_index(
        "ix_reservasi_fasilitas_tanggal", "reservasi", ["nama_fasilitas", "tanggal_kunjungan"]
    )


def downgrade() -> None:
    op.drop_table("reservasi")
    op.drop_table("berpartisipasi")
    op.drop_table("jadwal_penugasan")
    op.drop_table("wahana")
    op.drop_table("atraksi")
    op.drop_table("fasilitas")
    op.drop_table("hewan")
    op.drop_table("pengguna")
