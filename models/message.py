"""Message model for per-application threads."""

from datetime import datetime

from sqlalchemy import and_, not_

from . import db


class Message(db.Model):
    """One entry in an application's append-only message log."""

    __tablename__ = "messages"

    id = db.Column(db.Integer, primary_key=True)
    application_id = db.Column(
        db.Integer, db.ForeignKey("applications.id"), nullable=False, index=True
    )
    sender_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False)
    receiver_id = db.Column(
        db.Integer, db.ForeignKey("users.id"), nullable=False, index=True
    )
    content = db.Column(db.Text, nullable=False)
    created_at = db.Column(db.DateTime, nullable=False, default=datetime.utcnow)
    is_system_message = db.Column(
        db.Boolean, nullable=False, default=False, server_default=db.text("false")
    )
    for_applicant_only = db.Column(
        db.Boolean, nullable=False, default=False, server_default=db.text("false")
    )
    read_status = db.Column(
        db.Boolean, nullable=False, default=False, server_default=db.text("false")
    )

    application = db.relationship("Application", back_populates="messages")
    sender = db.relationship("User", foreign_keys=[sender_id])

    @staticmethod
    def thread_query(application_id: int):
        """Messages of one application, oldest first."""

        return Message.query.filter(Message.application_id == application_id).order_by(
            Message.created_at.asc(), Message.id.asc()
        )

    @staticmethod
    def unread_query(receiver_id: int):
        return Message.query.filter(
            Message.receiver_id == receiver_id, Message.read_status.is_(False)
        )

    @staticmethod
    def visible_filter(query, viewer_id: int, poster_id: int):
        """Query form of :meth:`visible_to`."""

        if viewer_id != poster_id:
            return query
        return query.filter(
            not_(
                and_(
                    Message.is_system_message.is_(True),
                    Message.for_applicant_only.is_(True),
                )
            )
        )

    @staticmethod
    def visible_to(record: dict, viewer_id: int, poster_id: int) -> bool:
        """Return False for applicant-only system messages shown to the poster."""

        if viewer_id != poster_id:
            return True
        return not (record.get("is_system_message") and record.get("for_applicant_only"))

    def to_dict(self) -> dict:
        """Serialize the message."""

        return {
            "id": self.id,
            "application_id": self.application_id,
            "sender_id": self.sender_id,
            "receiver_id": self.receiver_id,
            "content": self.content,
            "created_at": self.created_at.isoformat() if self.created_at else None,
            "is_system_message": bool(self.is_system_message),
            "for_applicant_only": bool(self.for_applicant_only),
            "read_status": bool(self.read_status),
        }
