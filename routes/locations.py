"""Region and municipality lookup used when posting an ad."""

from __future__ import annotations

from flask import Blueprint, jsonify, request

from models import db
from models.location import Location
from utils.request_validation import clean_text

locations_bp = Blueprint("locations", __name__)


@locations_bp.route("", methods=["GET"])
def list_locations():
    """Distinct regions, or the municipalities of ``region`` when given."""

    term = (clean_text(request.args.get("q")) or "").lower()
    region = clean_text(request.args.get("region"))

    if region is None:
        rows = db.session.query(Location.region).distinct().order_by(Location.region)
        regions = [value for (value,) in rows if term in value.lower()]
        return jsonify({"regions": regions, "count": len(regions)})

    rows = (
        db.session.query(Location.municipality)
        .filter(Location.region == region, Location.municipality.isnot(None))
        .distinct()
        .order_by(Location.municipality)
    )
    municipalities = [value for (value,) in rows if term in value.lower()]
    return jsonify(
        {"region": region, "municipalities": municipalities, "count": len(municipalities)}
    )
