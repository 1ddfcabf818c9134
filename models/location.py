"""Region and municipality reference data."""

from . import db


class Location(db.Model):
    __tablename__ = "locations"
    __table_args__ = (
        db.UniqueConstraint("region", "municipality", name="uq_locations_region_municipality"),
    )

    id = db.Column(db.Integer, primary_key=True)
    region = db.Column(db.String(120), nullable=False, index=True)
    municipality = db.Column(db.String(120), nullable=True)

    @staticmethod
    def is_known_region(region: str) -> bool:
        return (
            db.session.query(Location.id).filter(Location.region == region).first()
            is not None
        )

    @staticmethod
    def municipality_in_region(region: str, municipality: str) -> bool:
        return (
            db.session.query(Location.id)
            .filter(Location.region == region, Location.municipality == municipality)
            .first()
            is not None
        )

    def to_dict(self) -> dict:
        return {"id": self.id, "region": self.region, "municipality": self.municipality}
