"""Application model and its status workflow."""

from datetime import datetime

from . import db

PENDING = "pending"
ACCEPTED = "accepted"
REJECTED = "rejected"
REJECTED_READ = "rejected_read"

APPLICATION_STATUSES = (PENDING, ACCEPTED, REJECTED, REJECTED_READ)

# Every status change the workflow allows; anything else is rejected.
ALLOWED_TRANSITIONS = {
    PENDING: frozenset({ACCEPTED, REJECTED}),
    ACCEPTED: frozenset(),
    REJECTED: frozenset({REJECTED_READ}),
    REJECTED_READ: frozenset(),
}


def application_note(ad_title: str, note: str | None = None) -> str:
    """Text of the system message that opens every thread."""

    return note or f'New application for "{ad_title}".'


def decision_note(status: str, ad_title: str) -> str:
    """Text of the system message sent to the applicant on a decision."""

    if status == ACCEPTED:
        return (
            f'Your application for "{ad_title}" has been accepted! '
            "You can now message with the poster."
        )
    return f'Your application for "{ad_title}" has been rejected.'


class InvalidTransition(ValueError):
    """Raised when an application is moved to a status it cannot reach."""

    def __init__(self, current: str, target: str):
        super().__init__(f"Cannot move application from {current} to {target}.")
        self.current = current
        self.target = target


class Application(db.Model):
    """Links an applicant to an ad and its poster."""

    __tablename__ = "applications"
    __table_args__ = (
        db.UniqueConstraint("ad_id", "applicant_id", name="uq_applications_ad_applicant"),
    )

    id = db.Column(db.Integer, primary_key=True)
    ad_id = db.Column(db.Integer, db.ForeignKey("ads.id"), nullable=False, index=True)
    applicant_id = db.Column(
        db.Integer, db.ForeignKey("users.id"), nullable=False, index=True
    )
    poster_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False, index=True)
    status = db.Column(
        db.Enum(*APPLICATION_STATUSES, name="application_status_enum"),
        nullable=False,
        default=PENDING,
        server_default=db.text("'pending'"),
    )
    created_at = db.Column(db.DateTime, nullable=False, default=datetime.utcnow)
    updated_at = db.Column(
        db.DateTime, nullable=False, default=datetime.utcnow, onupdate=datetime.utcnow
    )

    ad = db.relationship("Ad", back_populates="applications")
    applicant = db.relationship("User", foreign_keys=[applicant_id])
    poster = db.relationship("User", foreign_keys=[poster_id])
    messages = db.relationship(
        "Message",
        back_populates="application",
        cascade="all, delete-orphan",
        lazy="dynamic",
    )

    def can_transition(self, target: str) -> bool:
        return target in ALLOWED_TRANSITIONS.get(self.status, frozenset())

    def transition_to(self, target: str) -> str:
        """Move to ``target`` and return the previous status."""

        if not self.can_transition(target):
            raise InvalidTransition(self.status, target)
        previous = self.status
        self.status = target
        return previous

    @property
    def initial_message(self) -> str:
        """Content of the first system message, the applicant's cover note."""

        from .message import Message

        first = (
            self.messages.filter(Message.is_system_message.is_(True))
            .order_by(Message.created_at.asc(), Message.id.asc())
            .first()
        )
        return first.content if first else ""

    def is_participant(self, user_id: int) -> bool:
        return user_id in (self.applicant_id, self.poster_id)

    def other_party(self, user_id: int) -> int:
        return self.poster_id if user_id == self.applicant_id else self.applicant_id

    def to_dict(self) -> dict:
        """Serialize the application."""

        return {
            "id": self.id,
            "ad_id": self.ad_id,
            "applicant_id": self.applicant_id,
            "poster_id": self.poster_id,
            "status": self.status,
            "ad_title": self.ad.title if self.ad else None,
            "applicant_username": self.applicant.display_name if self.applicant else None,
            "poster_username": self.poster.display_name if self.poster else None,
            "created_at": self.created_at.isoformat() if self.created_at else None,
        }
