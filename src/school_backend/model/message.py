from sqlalchemy import Boolean, Column, ForeignKey, Index, String, text
from sqlalchemy.orm import relationship

from .base import Base, id_column, created_at_column, updated_at_column


class Message(Base):
    __tablename__ = 'message'
    __table_args__ = (
        Index('msg_sender_receiver_idx', 'sender_id', 'receiver_id'),
        Index('msg_receiver_read_idx', 'receiver_id', 'is_read'),
    )

    id = id_column()
    created_at = created_at_column()
    updated_at = updated_at_column()
    sender_id = Column(ForeignKey('user.id', ondelete='CASCADE'), nullable=False)
    receiver_id = Column(ForeignKey('user.id', ondelete='CASCADE'), nullable=False)
    content = Column(String(16384), nullable=False)
    is_read = Column(Boolean, nullable=False, default=False, server_default=text("false"))

    sender = relationship('User', foreign_keys=[sender_id], back_populates='sent_messages')
    receiver = relationship('User', foreign_keys=[receiver_id], back_populates='received_messages')


class Notification(Base):
    __tablename__ = 'notification'

    id = id_column()
    created_at = created_at_column()
    updated_at = updated_at_column()
    user_id = Column(ForeignKey('user.id', ondelete='CASCADE'), nullable=False, index=True)
    message = Column(String(2048), nullable=False)
    is_read = Column(Boolean, nullable=False, default=False, server_default=text("false"))

    user = relationship('User', back_populates='notifications')
