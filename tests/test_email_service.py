"""
Tests for the SES email service.

The SES client is faked (see conftest); no AWS calls are made.
"""

import pytest
from botocore.exceptions import EndpointConnectionError

from app.core.config import settings
from app.core.errors import EmailDeliveryError
from app.models.email_log import EmailLog
from app.services.email_service import get_translations


class TestVerificationCodeEmail:
    def test_sends_branded_email(self, db_session, mailer, ses_client, store):
        message_id = mailer.send_verification_code_email(db_session, "jane@example.com", store, "482913")

        assert message_id == "msg-1"
        sent = ses_client.sent[0]
        assert sent["Source"].endswith(f"<{settings.AWS_SES_FROM_EMAIL}>")
        assert sent["Message"]["Subject"]["Data"] == "Votre code de connexion : 482913 - Location Vélo"
        assert "482913" in sent["Message"]["Body"]["Html"]["Data"]
        assert "482913" in sent["Message"]["Body"]["Text"]["Data"]
        assert "#2563eb" in sent["Message"]["Body"]["Html"]["Data"]

    def test_logs_sent_email(self, db_session, mailer, store):
        mailer.send_verification_code_email(db_session, "jane@example.com", store, "482913", locale="en")

        log = db_session.query(EmailLog).one()
        assert log.status == "sent"
        assert log.template_type == "verification_code"
        assert log.message_id == "msg-1"
        assert log.store_id == store.id
        assert log.subject == "Your login code: 482913 - Location Vélo"

    def test_client_error_raises_and_logs(self, db_session, mailer, ses_client, store):
        ses_client.fail_with("MailFromDomainNotVerified", "Domain not verified")

        with pytest.raises(EmailDeliveryError):
            mailer.send_verification_code_email(db_session, "jane@example.com", store, "482913")

        log = db_session.query(EmailLog).one()
        assert log.status == "failed"
        assert log.error == "MailFromDomainNotVerified: Domain not verified"

    def test_connection_error_raises(self, db_session, mailer, ses_client, store, monkeypatch):
        def unreachable(**kwargs):
            raise EndpointConnectionError(endpoint_url="https://email.eu-west-3.amazonaws.com")

        monkeypatch.setattr(ses_client, "send_email", unreachable)

        with pytest.raises(EmailDeliveryError):
            mailer.send_verification_code_email(db_session, "jane@example.com", store, "482913")

        assert db_session.query(EmailLog).one().status == "failed"


class TestInstantAccessEmail:
    def test_link_is_escaped_in_html(self, db_session, mailer, ses_client, store):
        url = "http://localhost:3000/location-velo/account/success?token=abc&type=payment"

        mailer.send_instant_access_email(db_session, "jane@example.com", store, url)

        body = ses_client.sent[0]["Message"]["Body"]
        assert "token=abc&amp;type=payment" in body["Html"]["Data"]
        assert url in body["Text"]["Data"]


class TestTranslations:
    def test_defaults_to_french(self):
        assert get_translations(None) == get_translations("fr")

    def test_unknown_locale_falls_back(self):
        assert get_translations("de") == get_translations("fr")
