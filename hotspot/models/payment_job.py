"""
PaymentJob — one row per paid hotspot session.
reference is unique and carries webhook idempotency; username is unique so
the credential factory can retry on collision.
"""
from datetime import datetime, timezone

from sqlalchemy import Column, DateTime, Index, Integer, String

from hotspot.db.base import Base


class JobStatus:
    PENDING = "pending"
    PROCESSED = "processed"
    SUSPENDED = "suspended"
    EXPIRED = "expired"

    ALL = (PENDING, PROCESSED, SUSPENDED, EXPIRED)


class PaymentJob(Base):
    __tablename__ = "payment_jobs"

    id = Column(Integer, primary_key=True, autoincrement=True)
    reference = Column(String(64), unique=True, nullable=False)
    plan = Column(String(8), nullable=False)                    # 24hr / 7d / 30d
    amount = Column(Integer, nullable=False)                    # price at creation time
    username = Column(String(32), unique=True, nullable=False)
    password = Column(String(32), nullable=False)
    mac = Column(String(64), nullable=False, default="unknown")
    customer_email = Column(String(255), nullable=True)
    customer_phone = Column(String(64), nullable=True)
    status = Column(String(16), nullable=False, default=JobStatus.PENDING, index=True)
    created_at = Column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
    )
    expires_at = Column(DateTime(timezone=True), nullable=False, index=True)
    processed_at = Column(DateTime(timezone=True), nullable=True)
    last_sync = Column(DateTime(timezone=True), nullable=True)       # latest router ack
    revoked_at = Column(DateTime(timezone=True), nullable=True)      # router removed the user

    __table_args__ = (
        Index("ix_payment_jobs_status_created_at", "status", "created_at"),
    )

    def __repr__(self) -> str:
        return f"<PaymentJob id={self.id} ref={self.reference} status={self.status}>"
