"""Ads blueprint with search, CRUD, and applying to an ad."""

from __future__ import annotations

from flask import Blueprint, current_app, jsonify, request
from sqlalchemy.exc import IntegrityError
from werkzeug.exceptions import BadRequest, Conflict, Forbidden, Unauthorized

from models import db
from models.ad import POSTER_CATEGORIES, Ad
from models.application import Application, application_note
from models.location import Location
from models.message import Message
from models.user import User
from services.notifications import current_badge
from utils.auth import optional_user, require_user
from utils.request_validation import (
    clean_text,
    parse_bool,
    parse_int_arg,
    parse_json_request,
    parse_price,
)

ads_bp = Blueprint("ads", __name__)

EDITABLE_FIELDS = (
    "title",
    "description",
    "region",
    "municipality",
    "price",
    "category",
    "poster_category",
)


def _can_modify_ad(ad: Ad, user: User | None) -> bool:
    return user is not None and user.id == ad.user_id


@ads_bp.route("", methods=["GET"])
def search_ads():
    """Return ads matching the optional text and location filters."""

    show_all = parse_bool(request.args.get("show_all")) or False
    if show_all and optional_user() is None:
        raise Unauthorized("Sign in to see more ads.")

    query = Ad.query

    search_term = clean_text(request.args.get("q"))
    if search_term:
        query = Ad.search_filter(query, search_term)

    region = clean_text(request.args.get("region"))
    if region:
        query = query.filter(Ad.region == region)

    municipality = clean_text(request.args.get("municipality"))
    if municipality:
        query = query.filter(Ad.municipality == municipality)

    total = query.count()
    query = query.order_by(Ad.created_at.desc(), Ad.id.desc())

    page_size = current_app.config.get("ADS_PAGE_SIZE", 5)
    limit = parse_int_arg(request.args.get("limit"), "limit")
    if not show_all:
        limit = min(limit or page_size, page_size)
    if limit is not None:
        query = query.limit(limit)

    ads = query.all()
    return jsonify(
        {
            "results": [ad.to_dict() for ad in ads],
            "count": len(ads),
            "total": total,
            "has_more": total > len(ads),
        }
    )


@ads_bp.route("/mine", methods=["GET"])
def my_ads():
    user = require_user()
    ads = (
        Ad.query.filter(Ad.user_id == user.id)
        .order_by(Ad.created_at.desc(), Ad.id.desc())
        .all()
    )
    return jsonify({"results": [ad.to_dict() for ad in ads], "count": len(ads)})


def _validate_ad_payload(data: dict, partial: bool = False, current: Ad | None = None):
    errors = []
    values = {}

    for field in ("title", "description", "region"):
        if field in data or not partial:
            value = clean_text(data.get(field))
            if value is None:
                errors.append(f"{field} is required")
            values[field] = value

    for field in ("municipality", "category"):
        if field in data:
            values[field] = clean_text(data.get(field))

    if "poster_category" in data:
        poster_category = clean_text(data.get("poster_category"))
        if poster_category is not None and poster_category not in POSTER_CATEGORIES:
            errors.append("poster_category must be one of private, business")
        values["poster_category"] = poster_category

    if "price" in data:
        try:
            values["price"] = parse_price(data.get("price"))
        except BadRequest as exc:
            errors.append(exc.description)

    region = values.get("region") or (current.region if current else None)
    # A region change alone is handled by clearing the stale municipality.
    municipality = values.get("municipality")
    if region and municipality and Location.is_known_region(region):
        if not Location.municipality_in_region(region, municipality):
            errors.append(f"municipality {municipality} is not in region {region}")

    return errors, values


@ads_bp.route("", methods=["POST"])
def create_ad():
    """Create an ad owned by the signed-in user."""

    user = require_user()
    data = parse_json_request(request)
    errors, values = _validate_ad_payload(data)
    if errors:
        raise BadRequest("; ".join(errors))

    ad = Ad(user_id=user.id, **values)
    db.session.add(ad)
    db.session.commit()
    current_app.logger.info("User %s created ad %s", user.id, ad.id)

    return jsonify(ad.to_dict()), 201


@ads_bp.route("/<int:ad_id>", methods=["GET"])
def get_ad(ad_id: int):
    require_user()
    ad = db.get_or_404(Ad, ad_id, description="Ad not found.")
    return jsonify(ad.to_dict())


@ads_bp.route("/<int:ad_id>", methods=["PATCH"])
def update_ad(ad_id: int):
    user = require_user()
    ad = db.get_or_404(Ad, ad_id, description="Ad not found.")
    if not _can_modify_ad(ad, user):
        raise Forbidden("You do not have permission to update this ad.")

    data = parse_json_request(request)
    errors, values = _validate_ad_payload(data, partial=True, current=ad)
    if errors:
        raise BadRequest("; ".join(errors))

    for field in EDITABLE_FIELDS:
        if field in values:
            setattr(ad, field, values[field])
    if "region" in values and "municipality" not in values:
        # A new region invalidates a municipality that belonged to the old one.
        if ad.municipality and Location.is_known_region(ad.region):
            if not Location.municipality_in_region(ad.region, ad.municipality):
                ad.municipality = None

    db.session.commit()
    return jsonify(ad.to_dict())


@ads_bp.route("/<int:ad_id>/applications", methods=["POST"])
def apply_to_ad(ad_id: int):
    """Apply to an ad: a pending application plus its opening system message."""

    user = require_user()
    ad = db.get_or_404(Ad, ad_id, description="Ad not found.")

    if ad.user_id == user.id:
        raise BadRequest("You cannot apply to your own ad.")

    existing = Application.query.filter_by(ad_id=ad.id, applicant_id=user.id).first()
    if existing is not None:
        raise Conflict("You have already applied to this ad.")

    data = request.get_json(silent=True) if request.is_json else None
    note = clean_text(data.get("message")) if isinstance(data, dict) else None

    application = Application(ad_id=ad.id, applicant_id=user.id, poster_id=ad.user_id)
    opening = Message(
        application=application,
        sender_id=user.id,
        receiver_id=ad.user_id,
        content=application_note(ad.title, note),
        is_system_message=True,
        for_applicant_only=False,
        read_status=False,
    )
    db.session.add(application)
    db.session.add(opening)
    try:
        db.session.commit()
    except IntegrityError:
        db.session.rollback()
        raise Conflict("You have already applied to this ad.")

    current_app.logger.info(
        "User %s applied to ad %s (application %s)", user.id, ad.id, application.id
    )
    # One new pending application plus one unread opening message.
    current_badge().increment(ad.user_id, 2)

    return jsonify(application.to_dict()), 201


@ads_bp.route("/<int:ad_id>/applications", methods=["GET"])
def list_ad_applications(ad_id: int):
    user = require_user()
    ad = db.get_or_404(Ad, ad_id, description="Ad not found.")
    if not _can_modify_ad(ad, user):
        raise Forbidden("Only the poster can view applications for this ad.")

    applications = (
        ad.applications.order_by(Application.created_at.desc(), Application.id.desc()).all()
    )
    return jsonify(
        {
            "ad": ad.to_dict(),
            "results": [application.to_dict() for application in applications],
            "count": len(applications),
        }
    )
