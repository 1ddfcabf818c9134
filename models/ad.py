"""Ad model and catalog filters."""

from datetime import datetime
from decimal import Decimal

from sqlalchemy import or_

from . import db

POSTER_CATEGORIES = ("private", "business")


class Ad(db.Model):
    """A posted job or task listing."""

    __tablename__ = "ads"

    id = db.Column(db.Integer, primary_key=True)
    title = db.Column(db.String(200), nullable=False)
    description = db.Column(db.Text, nullable=False)
    region = db.Column(db.String(120), nullable=False, index=True)
    municipality = db.Column(db.String(120), nullable=True, index=True)
    price = db.Column(db.Numeric(10, 2), nullable=True)
    category = db.Column(db.String(80), nullable=True)
    poster_category = db.Column(
        db.Enum(*POSTER_CATEGORIES, name="poster_category_enum"), nullable=True
    )
    user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False, index=True)
    created_at = db.Column(db.DateTime, nullable=False, default=datetime.utcnow, index=True)

    owner = db.relationship("User", backref=db.backref("ads", lazy="dynamic"))
    applications = db.relationship(
        "Application",
        back_populates="ad",
        cascade="all, delete-orphan",
        lazy="dynamic",
    )

    def to_dict(self) -> dict:
        """Serialize the ad to a dictionary."""

        price = float(self.price) if isinstance(self.price, Decimal) else self.price
        return {
            "id": self.id,
            "title": self.title,
            "description": self.description,
            "region": self.region,
            "municipality": self.municipality,
            "price": price,
            "category": self.category,
            "poster_category": self.poster_category,
            "user_id": self.user_id,
            "created_at": self.created_at.isoformat() if self.created_at else None,
        }

    @staticmethod
    def search_filter(query, term: str):
        """Case-insensitive substring match on text and location columns."""

        escaped = term.lower().replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")
        like = f"%{escaped}%"
        columns = (
            Ad.title,
            Ad.description,
            Ad.region,
            db.func.coalesce(Ad.municipality, ""),
        )
        # Wildcards in the term match literally.
        return query.filter(
            or_(*(db.func.lower(column).like(like, escape="\\") for column in columns))
        )
