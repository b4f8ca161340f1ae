import dataclasses

import pytest

from src.shared.contact.config import ContactSettings, load_contact_settings
from src.shared.contact.errors import ClientError
from src.shared.contact.schemas import ContactSubmission, is_valid_email, validate_submission


class TestContactSubmission:
    def test_missing_fields_become_empty_strings(self):
        submission = ContactSubmission.model_validate({})
        assert (submission.name, submission.email, submission.message, submission.honeypot) == ("", "", "", "")

    def test_fields_are_trimmed_and_honeypot_read_from_form_name(self):
        submission = ContactSubmission.model_validate({"name": " Anna ", "_honeypot": " bot "})
        assert submission.name == "Anna"
        assert submission.honeypot == "bot"
        assert submission.is_bot

    def test_loose_values_are_stringified(self):
        submission = ContactSubmission.model_validate(
            {"name": 42, "email": None, "message": ["a", "b"], "_honeypot": False}
        )
        assert submission.name == "42"
        assert submission.email == ""
        assert submission.message == "a,b"
        assert not submission.is_bot

    def test_zero_counts_as_missing_but_not_inside_lists(self):
        submission = ContactSubmission.model_validate({"name": 0, "email": 0.0, "message": ["a", 0]})
        assert submission.name == ""
        assert submission.email == ""
        assert submission.message == "a,0"

    def test_plain_honeypot_key_does_not_fill_the_honeypot(self):
        submission = ContactSubmission.model_validate({"name": "Anna", "honeypot": "I like honey"})
        assert submission.honeypot == ""
        assert not submission.is_bot

    def test_unknown_fields_are_ignored(self):
        submission = ContactSubmission.model_validate({"name": "Anna", "phone": "123"})
        assert submission.name == "Anna"


@pytest.mark.parametrize("email", ["a@b.it", "mario.rossi+web@example.co.uk", "x@sub.domain.org"])
def test_valid_emails(email):
    assert is_valid_email(email)


@pytest.mark.parametrize("email", ["not-an-email", "a@b", "@example.com", "a b@example.com", "a@@example.com", ""])
def test_invalid_emails(email):
    assert not is_valid_email(email)


def test_validation_stops_at_first_failure():
    with pytest.raises(ClientError) as exc_info:
        validate_submission(ContactSubmission(name="Anna", email="bad", message=""))
    assert exc_info.value.message == "Email non valida"
    assert exc_info.value.status_code == 400


def test_valid_submission_passes():
    validate_submission(ContactSubmission(name="Anna", email="anna@example.it", message="Ciao"))


class TestContactSettings:
    def test_defaults(self, contact_env):
        settings = load_contact_settings()
        assert settings.rate_limit_disabled is False
        assert settings.rate_limit_window_ms == 600000
        assert settings.rate_limit_max == 6
        assert settings.subject == "Richiesta info"
        assert settings.smtp_host is None

    def test_invalid_numbers_fall_back_to_defaults(self, contact_env):
        contact_env.setenv("RATE_LIMIT_WINDOW_MS", "-5")
        contact_env.setenv("RATE_LIMIT_MAX", "abc")
        contact_env.setenv("SMTP_PORT", "not-a-port")
        settings = load_contact_settings()
        assert settings.rate_limit_window_ms == 600000
        assert settings.rate_limit_max == 6
        assert settings.smtp_port is None

    def test_environment_overrides(self, contact_env, smtp_env):
        contact_env.setenv("RATE_LIMIT_DISABLED", "True")
        contact_env.setenv("RATE_LIMIT_WINDOW_MS", "90500")
        contact_env.setenv("RATE_LIMIT_MAX", "3")
        settings = load_contact_settings()
        assert settings.rate_limit_disabled is True
        assert settings.rate_limit_window_seconds == 90.5
        assert settings.rate_limit_max == 3
        assert (settings.smtp_host, settings.smtp_port, settings.smtp_user, settings.smtp_password) == (
            "smtp.example.com", 587, "mailer", "secret"
        )

    def test_blank_addresses_count_as_missing(self, contact_env):
        contact_env.setenv("TO_EMAIL", "   ")
        assert load_contact_settings().to_email is None

    def test_settings_are_immutable(self):
        settings = ContactSettings()
        with pytest.raises(dataclasses.FrozenInstanceError):
            settings.rate_limit_max = 1
