"""Profiles blueprint: profile editing and avatar uploads."""

from __future__ import annotations

import mimetypes
import os
import uuid
from typing import Iterable

from flask import Blueprint, current_app, jsonify, request, send_file
from werkzeug.datastructures import FileStorage
from werkzeug.exceptions import BadRequest, NotFound

from models import db
from models.ad import Ad
from models.profile import Profile
from storage.local_storage import LocalStorage
from utils.auth import require_user
from utils.request_validation import clean_text, parse_json_request

profiles_bp = Blueprint("profiles", __name__)

AVATAR_FOLDER = "avatars"
MAX_AVATAR_SIZE_DEFAULT = 2 * 1024 * 1024  # 2 MB
ALLOWED_AVATAR_TYPES_DEFAULT = {"png", "jpg", "jpeg", "gif", "webp"}
PROFILE_FIELDS = {
    "username": 80,
    "description": 2000,
    "municipality": 120,
}


def _storage() -> LocalStorage:
    return LocalStorage(current_app.config.get("UPLOAD_DIR"), base_url="/profiles")


def _allowed_extensions() -> set[str]:
    configured = current_app.config.get("ALLOWED_AVATAR_TYPES")
    if not configured:
        return set(ALLOWED_AVATAR_TYPES_DEFAULT)
    if isinstance(configured, str):
        values: Iterable[str] = configured.split(",")
    else:
        values = configured

    normalized = {
        item.strip().lower().lstrip(".")
        for item in values
        if isinstance(item, str) and item.strip()
    }
    if "jpeg" in normalized or "jpg" in normalized:
        normalized.update({"jpg", "jpeg"})
    return normalized or set(ALLOWED_AVATAR_TYPES_DEFAULT)


def _validate_avatar(file: FileStorage) -> str:
    if file.filename is None or file.filename.strip() == "":
        raise BadRequest("An avatar image is required.")

    extension = file.filename.rsplit(".", 1)[-1].lower() if "." in file.filename else ""
    allowed = _allowed_extensions()
    if extension not in allowed:
        raise BadRequest(
            f"File type not allowed. Allowed types: {', '.join(sorted(allowed))}."
        )

    max_size = int(current_app.config.get("MAX_AVATAR_SIZE", MAX_AVATAR_SIZE_DEFAULT))
    file.stream.seek(0, os.SEEK_END)
    size = file.stream.tell()
    file.stream.seek(0)
    if size == 0:
        raise BadRequest("The avatar image is empty.")
    if size > max_size:
        raise BadRequest(f"File exceeds the maximum avatar size of {max_size} bytes.")
    return extension


def _profile_or_404(user_id: int) -> Profile:
    return db.get_or_404(Profile, user_id, description="Could not find the requested user profile.")


@profiles_bp.route("/me", methods=["GET"])
def my_profile():
    user = require_user()
    payload = _profile_or_404(user.id).to_dict()
    payload["email"] = user.email
    payload["ads_count"] = Ad.query.filter(Ad.user_id == user.id).count()
    return jsonify(payload)


@profiles_bp.route("/me", methods=["PATCH"])
def update_my_profile():
    """Update username, description or municipality of the caller's profile."""

    user = require_user()
    profile = _profile_or_404(user.id)
    data = parse_json_request(request)

    unknown = sorted(set(data) - set(PROFILE_FIELDS))
    if unknown:
        raise BadRequest(f"Unknown fields: {', '.join(unknown)}.")

    for field, max_length in PROFILE_FIELDS.items():
        if field not in data:
            continue
        value = data[field]
        if value is not None and not isinstance(value, str):
            raise BadRequest(f"{field} must be a string.")
        value = clean_text(value)
        if value is not None and len(value) > max_length:
            raise BadRequest(f"{field} must be at most {max_length} characters.")
        setattr(profile, field, value)

    db.session.commit()
    return jsonify(profile.to_dict())


@profiles_bp.route("/me/avatar", methods=["POST"])
def upload_avatar():
    """Store a new avatar image and point the profile at its public URL."""

    user = require_user()
    profile = _profile_or_404(user.id)

    file = request.files.get("avatar")
    if not isinstance(file, FileStorage):
        raise BadRequest("An avatar image is required.")
    extension = _validate_avatar(file)

    storage = _storage()
    key = f"{AVATAR_FOLDER}/{user.id}-{uuid.uuid4().hex}.{extension}"
    stored_path = storage.save(file, key)

    previous_url = profile.avatar_url
    profile.avatar_url = storage.public_url(stored_path)
    db.session.commit()
    current_app.logger.info("Stored avatar %s for user %s", stored_path, user.id)

    if previous_url and previous_url.startswith(storage.base_url + "/"):
        storage.delete(previous_url[len(storage.base_url) + 1 :])

    return jsonify({"avatar_url": profile.avatar_url}), 201


@profiles_bp.route(f"/{AVATAR_FOLDER}/<path:filename>", methods=["GET"])
def serve_avatar(filename: str):
    storage = _storage()
    path = f"{AVATAR_FOLDER}/{filename}"
    if not storage.exists(path):
        raise NotFound("Avatar not found.")

    mimetype = mimetypes.guess_type(filename)[0] or "application/octet-stream"
    return send_file(storage.absolute_path(path), mimetype=mimetype, max_age=3600)


@profiles_bp.route("/<int:user_id>", methods=["GET"])
def public_profile(user_id: int):
    require_user()
    return jsonify(_profile_or_404(user_id).to_dict())


@profiles_bp.route("/<int:user_id>/ads", methods=["GET"])
def profile_ads(user_id: int):
    require_user()
    _profile_or_404(user_id)
    ads = (
        Ad.query.filter(Ad.user_id == user_id)
        .order_by(Ad.created_at.desc(), Ad.id.desc())
        .all()
    )
    return jsonify({"results": [ad.to_dict() for ad in ads], "count": len(ads)})

