"""Seed locations, demo users, ads and an application."""

from decimal import Decimal
from pathlib import Path
import sys

sys.path.insert(0, str(Path(__file__).resolve().parents[1]))

from app import create_app
from models import db
from models.ad import Ad
from models.application import Application, application_note
from models.location import Location
from models.message import Message
from models.profile import Profile, email_name_for
from models.user import User

LOCATIONS = {
    "Stockholm": ["Stockholm", "Solna", "Nacka", "Huddinge"],
    "Västra Götaland": ["Göteborg", "Borås", "Trollhättan"],
    "Skåne": ["Malmö", "Lund", "Helsingborg"],
    "Uppsala": ["Uppsala", "Enköping"],
}


def get_or_create_user(email: str, password: str, username: str) -> User:
    user = User.query.filter_by(email=email).first()
    if user is None:
        user = User(email=email)
        user.profile = Profile(username=username, email_name=email_name_for(email))
        db.session.add(user)
    user.set_password(password)
    return user


def seed_locations() -> int:
    created = 0
    for region, municipalities in LOCATIONS.items():
        for municipality in municipalities:
            exists = Location.query.filter_by(
                region=region, municipality=municipality
            ).first()
            if exists is None:
                db.session.add(Location(region=region, municipality=municipality))
                created += 1
    return created


def main() -> None:
    app = create_app()
    with app.app_context():
        db.create_all()
        locations = seed_locations()

        poster = get_or_create_user("poster@example.com", "PosterPass123", "Anna")
        applicant = get_or_create_user("applicant@example.com", "ApplicantPass123", "Erik")
        db.session.flush()

        ads_data = [
            {
                "title": "Hjälp med flytt",
                "description": "Behöver två personer som kan bära möbler en lördag.",
                "region": "Stockholm",
                "municipality": "Solna",
                "price": Decimal("1200"),
                "category": "Flytt",
                "poster_category": "private",
            },
            {
                "title": "Trädgårdsarbete",
                "description": "Gräsklippning och häckklippning varannan vecka.",
                "region": "Skåne",
                "municipality": "Lund",
                "price": Decimal("350"),
                "category": "Trädgård",
                "poster_category": "private",
            },
            {
                "title": "Lagerpersonal sökes",
                "description": "Deltidstjänst på lager, truckkort meriterande.",
                "region": "Västra Götaland",
                "municipality": "Borås",
                "price": None,
                "category": "Lager",
                "poster_category": "business",
            },
        ]

        ads = []
        for data in ads_data:
            ad = Ad.query.filter_by(title=data["title"], user_id=poster.id).first()
            if ad is None:
                ad = Ad(user_id=poster.id, **data)
                db.session.add(ad)
            ads.append(ad)
        db.session.flush()

        first_ad = ads[0]
        application = Application.query.filter_by(
            ad_id=first_ad.id, applicant_id=applicant.id
        ).first()
        if application is None:
            application = Application(
                ad_id=first_ad.id, applicant_id=applicant.id, poster_id=poster.id
            )
            db.session.add(application)
            db.session.add(
                Message(
                    application=application,
                    sender_id=applicant.id,
                    receiver_id=poster.id,
                    content=application_note(first_ad.title, "Jag har bil och kan hjälpa till."),
                    is_system_message=True,
                )
            )

        db.session.commit()
        print(f"Seeded {locations} locations, {len(ads)} ads, application {application.id}")
        print("Poster: poster@example.com / PosterPass123")
        print("Applicant: applicant@example.com / ApplicantPass123")


if __name__ == "__main__":
    main()
