"""
Admin Setting database model.

Per-admin key/value settings (notification phone, SMS toggle).
"""

from sqlalchemy import Column, Integer, String, DateTime, ForeignKey, UniqueConstraint
from sqlalchemy.sql import func
from transfer_backend.app.db.session import Base


class AdminSetting(Base):
    """Admin Setting model."""
    __tablename__ = "admin_settings"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    admin_id = Column(Integer, ForeignKey('profiles.id'), nullable=False, index=True)
    setting_key = Column(String(100), nullable=False)
    setting_value = Column(String(255), nullable=True)

    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)

    __table_args__ = (
        UniqueConstraint('admin_id', 'setting_key', name='uq_admin_settings_admin_key'),
    )

    def __repr__(self):
        return f"<AdminSetting(admin_id={self.admin_id}, key='{self.setting_key}')>"
