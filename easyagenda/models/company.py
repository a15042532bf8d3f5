# easyagenda/models/company.py
"""
Tenant models - companies and the professionals working for them
"""
from sqlalchemy import Column, String, Boolean, DateTime, JSON, ForeignKey, Uuid
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
import uuid

from easyagenda.models.base import Base


class Company(Base):
    __tablename__ = "companies"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    name = Column(String(200), nullable=False)

    # Wall-clock timezone every slot and booking of this tenant is expressed in
    timezone = Column(String(50), nullable=False, default="America/Sao_Paulo")

    # Notification delivery
    notification_channels = Column(JSON, default=list)  # ["email", "whatsapp"]
    notification_webhook_url = Column(String(500), nullable=True)
    notification_webhook_secret = Column(String(200), nullable=True)

    is_active = Column(Boolean, default=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now()
    )

    professionals = relationship("Professional", back_populates="company")
    services = relationship("Service", back_populates="company")
    notification_templates = relationship(
        "NotificationTemplate", back_populates="company", cascade="all, delete-orphan"
    )

    def __repr__(self):
        return f"<Company(id={self.id}, name={self.name})>"

    def to_dict(self):
        """Convert to dictionary for API responses"""
        return {
            "id": str(self.id),
            "name": self.name,
            "timezone": self.timezone,
            "notification_channels": self.notification_channels or [],
            "notification_webhook_url": self.notification_webhook_url,
            "is_active": self.is_active,
        }


class Professional(Base):
    __tablename__ = "professionals"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    company_id = Column(
        Uuid, ForeignKey("companies.id", ondelete="CASCADE"), nullable=False, index=True
    )

    name = Column(String(200), nullable=False)
    email = Column(String(200), nullable=True)
    phone = Column(String(30), nullable=True)

    # True until the professional saves an own weekly schedule
    inherits_company_availability = Column(Boolean, nullable=False, default=True)

    is_active = Column(Boolean, default=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    company = relationship("Company", back_populates="professionals")
    services = relationship(
        "Service", secondary="service_professionals", back_populates="professionals"
    )

    def __repr__(self):
        return f"<Professional(id={self.id}, name={self.name}, company_id={self.company_id})>"

    def to_dict(self):
        return {
            "id": str(self.id),
            "company_id": str(self.company_id),
            "name": self.name,
            "email": self.email,
            "phone": self.phone,
            "inherits_company_availability": self.inherits_company_availability,
            "is_active": self.is_active,
        }
