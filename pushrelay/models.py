"""
File: pushrelay/models.py

Project: pushrelay

Purpose:
SQLAlchemy ORM models for stored push results.

Design principles:
- Rows are written once by the result store and never updated
- No business logic in models
- Relationships kept minimal and explicit
"""

from sqlalchemy import (
    BigInteger,
    Column,
    DateTime,
    ForeignKey,
    Integer,
    String,
    Text,
    func,
)
from sqlalchemy.orm import declarative_base, relationship

Base = declarative_base()


# ---------------------------------------------------------------------
# Push Batch (one reconciled multicast session)
# ---------------------------------------------------------------------
class PushBatch(Base):
    __tablename__ = "push_batches"

    push_batch_id = Column(Integer, primary_key=True, autoincrement=True)
    multicast_id = Column(BigInteger, nullable=False)
    # comma-separated, attempt order
    retry_multicast_ids = Column(Text, nullable=True)
    success = Column(Integer, nullable=False)
    failure = Column(Integer, nullable=False)
    canonical_ids = Column(Integer, nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    results = relationship(
        "PushResult",
        back_populates="batch",
        order_by="PushResult.position",
    )


# ---------------------------------------------------------------------
# Push Result (one recipient, or one device group send)
# ---------------------------------------------------------------------
class PushResult(Base):
    __tablename__ = "push_results"

    push_result_id = Column(Integer, primary_key=True, autoincrement=True)
    push_batch_id = Column(
        Integer,
        ForeignKey("push_batches.push_batch_id"),
        nullable=True,
    )
    # index in the caller's recipient list, for batch members
    position = Column(Integer, nullable=True)

    message_id = Column(String(1000), nullable=True)
    canonical_registration_id = Column(String(255), nullable=True)
    error_code = Column(String(45), nullable=True)

    # device group sends only
    success = Column(Integer, nullable=True)
    failure = Column(Integer, nullable=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now())

    batch = relationship("PushBatch", back_populates="results")
    failed_registration_ids = relationship(
        "PushFailedRecipient",
        back_populates="result",
        order_by="PushFailedRecipient.push_failed_recipient_id",
    )


# ---------------------------------------------------------------------
# Failed recipient of a device group send
# ---------------------------------------------------------------------
class PushFailedRecipient(Base):
    __tablename__ = "push_failed_recipients"

    push_failed_recipient_id = Column(Integer, primary_key=True, autoincrement=True)
    push_result_id = Column(
        Integer,
        ForeignKey("push_results.push_result_id"),
        nullable=False,
    )
    registration_id = Column(String(255), nullable=False)

    result = relationship("PushResult", back_populates="failed_registration_ids")
