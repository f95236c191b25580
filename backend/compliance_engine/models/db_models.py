"""
Compliance Engine - SQLAlchemy ORM Models
Relational storage for the compliance store.

communication_logs is append-only: rows are inserted, never updated or deleted.
Corrections are new rows whose supersedes_id points at the corrected row.
"""
from datetime import datetime
from sqlalchemy import Column, String, Float, DateTime, Text, JSON, ForeignKey, Enum as SQLEnum, Boolean, Index

from ..database import Base
from .compliance import (
    CeaseDesistMethod,
    CommunicationChannel,
    CommunicationDirection,
    CommunicationType,
    ComplianceFlagType,
    FlagSeverity,
)


class CommunicationLogDB(Base):
    """Immutable record of a communication attempt."""
    __tablename__ = "communication_logs"

    id = Column(String(36), primary_key=True)  # UUID
    case_id = Column(String(64), nullable=False, index=True)
    debtor_id = Column(String(64), nullable=False, index=True)
    creditor_id = Column(String(64), nullable=True)

    communication_type = Column(SQLEnum(CommunicationType), nullable=False)
    direction = Column(SQLEnum(CommunicationDirection), nullable=False)
    channel = Column(SQLEnum(CommunicationChannel), nullable=False)

    message_id = Column(String(64), nullable=True)
    content = Column(Text, nullable=True)
    original_content = Column(Text, nullable=True)  # Pre-rewrite text, if modified
    tone_score = Column(Float, nullable=True)

    compliant = Column(Boolean, nullable=False)
    # Issue set produced by the pre-send evaluation at send time
    compliance_issues = Column(JSON, nullable=False, default=list)

    timestamp = Column(DateTime, nullable=False, index=True)  # naive UTC
    supersedes_id = Column(String(36), ForeignKey("communication_logs.id"), nullable=True)


class ComplianceFlagDB(Base):
    """Compliance flag raised by a failed check. Only resolution fields change."""
    __tablename__ = "compliance_flags"

    id = Column(String(36), primary_key=True)  # UUID
    case_id = Column(String(64), nullable=False, index=True)
    message_id = Column(String(64), nullable=True)

    flag_type = Column(SQLEnum(ComplianceFlagType), nullable=False)
    severity = Column(SQLEnum(FlagSeverity), nullable=False)
    details = Column(JSON, nullable=True)

    resolved = Column(Boolean, nullable=False, default=False)
    resolution_notes = Column(Text, nullable=True)
    resolved_by = Column(String(64), nullable=True)

    created_at = Column(DateTime, nullable=False, default=datetime.utcnow)
    resolved_at = Column(DateTime, nullable=True)


class CeaseDesistDB(Base):
    """One cease-and-desist record per case."""
    __tablename__ = "cease_desist_records"

    case_id = Column(String(64), primary_key=True)
    debtor_id = Column(String(64), nullable=False, index=True)
    active = Column(Boolean, nullable=False, default=True)

    requested_at = Column(DateTime, nullable=False)
    request_method = Column(SQLEnum(CeaseDesistMethod), nullable=False)
    notes = Column(Text, nullable=True)

    acknowledged_at = Column(DateTime, nullable=True)
    acknowledged_by = Column(String(64), nullable=True)

    # Lift requires a reason; the record is deactivated, never deleted
    lifted_at = Column(DateTime, nullable=True)
    lifted_by = Column(String(64), nullable=True)
    lift_reason = Column(Text, nullable=True)


class ContactEventDB(Base):
    """Contact event used for rolling-window frequency limits."""
    __tablename__ = "contact_events"

    id = Column(String(36), primary_key=True)
    debtor_id = Column(String(64), nullable=False)
    case_id = Column(String(64), nullable=False)
    direction = Column(SQLEnum(CommunicationDirection), nullable=False)
    channel = Column(SQLEnum(CommunicationChannel), nullable=False)
    timestamp = Column(DateTime, nullable=False)  # naive UTC

    __table_args__ = (
        Index("ix_contact_events_debtor_timestamp", "debtor_id", "timestamp"),
    )


class DebtorTimezoneDB(Base):
    """IANA timezone for a debtor."""
    __tablename__ = "debtor_timezones"

    debtor_id = Column(String(64), primary_key=True)
    timezone = Column(String(64), nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)
