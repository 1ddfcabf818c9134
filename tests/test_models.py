"""Tests for model helpers that do not need a request."""

import pytest

from models import db
from models.application import (
    ACCEPTED,
    PENDING,
    REJECTED,
    REJECTED_READ,
    Application,
    InvalidTransition,
    application_note,
    decision_note,
)
from models.message import Message
from models.profile import Profile, email_name_for
from models.user import User


def test_user_password_helpers(app):
    with app.app_context():
        user = User(email="helper@example.com")
        user.set_password("password123")
        db.session.add(user)
        db.session.commit()

        assert user.is_active is True
        assert user.check_password("password123")
        assert not user.check_password("wrong")
        assert user.display_name == "Unknown User"


def test_profile_display_name_fallbacks():
    assert email_name_for("kalle@example.com") == "kalle"

    profile = Profile(username="Kalle", email_name="kalle")
    assert profile.display_name == "Kalle"

    profile.username = None
    assert profile.display_name == "kalle"

    profile.email_name = ""
    assert profile.display_name == "Unknown User"


@pytest.mark.parametrize(
    "current, target, allowed",
    [
        (PENDING, ACCEPTED, True),
        (PENDING, REJECTED, True),
        (PENDING, REJECTED_READ, False),
        (REJECTED, REJECTED_READ, True),
        (REJECTED, ACCEPTED, False),
        (ACCEPTED, REJECTED, False),
        (ACCEPTED, PENDING, False),
        (REJECTED_READ, PENDING, False),
    ],
)
def test_application_transitions(current, target, allowed):
    application = Application(status=current)

    assert application.can_transition(target) is allowed
    if allowed:
        assert application.transition_to(target) == current
        assert application.status == target
    else:
        with pytest.raises(InvalidTransition) as excinfo:
            application.transition_to(target)
        assert excinfo.value.current == current
        assert excinfo.value.target == target
        assert application.status == current


def test_application_parties():
    application = Application(applicant_id=1, poster_id=2)

    assert application.is_participant(1)
    assert application.is_participant(2)
    assert not application.is_participant(3)
    assert application.other_party(1) == 2
    assert application.other_party(2) == 1


def test_note_texts():
    assert application_note("Flytt") == 'New application for "Flytt".'
    assert application_note("Flytt", "Hej!") == "Hej!"
    assert "accepted" in decision_note(ACCEPTED, "Flytt")
    assert decision_note(REJECTED, "Flytt") == 'Your application for "Flytt" has been rejected.'


def test_message_visibility():
    applicant_only = {"is_system_message": True, "for_applicant_only": True}
    shared_system = {"is_system_message": True, "for_applicant_only": False}
    chat = {"is_system_message": False, "for_applicant_only": False}

    poster_id, applicant_id = 10, 20

    assert not Message.visible_to(applicant_only, poster_id, poster_id)
    assert Message.visible_to(applicant_only, applicant_id, poster_id)
    assert Message.visible_to(shared_system, poster_id, poster_id)
    assert Message.visible_to(chat, poster_id, poster_id)
