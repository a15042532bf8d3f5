from sqlalchemy import Column, String, Text, Boolean, DateTime, ForeignKey, Uuid, UniqueConstraint
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
import uuid

from easyagenda.models.base import Base


class NotificationTemplate(Base):
    """
    Company wording for one event, recipient and channel.
    An inactive template switches that notification off for the company.
    """
    __tablename__ = "notification_templates"
    __table_args__ = (
        UniqueConstraint("company_id", "event", "recipient", "channel", name="uq_notification_template_target"),
    )

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    company_id = Column(Uuid, ForeignKey("companies.id", ondelete="CASCADE"), nullable=False, index=True)

    event = Column(String(50), nullable=False)  # agendamento_criado, ...
    recipient = Column(String(20), nullable=False)  # cliente, profissional
    channel = Column(String(20), nullable=False)  # email, whatsapp

    # Placeholders: {{cliente_nome}}, {{profissional_nome}}, {{empresa_nome}},
    # {{servico}}, {{data_hora}}, {{status}}
    message = Column(Text, nullable=False)
    is_active = Column(Boolean, nullable=False, default=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    company = relationship("Company", back_populates="notification_templates")

    def __repr__(self):
        return f"<NotificationTemplate(event={self.event}, recipient={self.recipient}, channel={self.channel})>"

    def to_dict(self):
        return {
            "id": str(self.id),
            "company_id": str(self.company_id),
            "event": self.event,
            "recipient": self.recipient,
            "channel": self.channel,
            "message": self.message,
            "is_active": self.is_active,
        }
