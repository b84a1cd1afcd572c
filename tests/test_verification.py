"""
Unit tests for verification code storage.

Tests:
- Issuing codes and instant access tokens
- Single-use consumption, expiry and tenant scoping
- Retention cleanup
"""

from datetime import timedelta

from app.core.verification import (
    _mark_used,
    cleanup_expired_codes,
    consume_instant_access_token,
    consume_verification_code,
    create_instant_access_token,
    create_verification_code,
)
from app.models.verification_code import VerificationCode, VerificationCodeType

EMAIL = "jane.doe@example.com"
TTL = timedelta(minutes=10)


class TestCreateVerificationCode:
    def test_creates_code_row(self, db_session, store, clock):
        verification = create_verification_code(db_session, store.id, EMAIL, clock(), TTL)

        assert len(verification.id) == 21
        assert verification.store_id == store.id
        assert verification.email == EMAIL
        assert verification.type == VerificationCodeType.CODE.value
        assert len(verification.code) == 6 and verification.code.isdigit()
        assert verification.token is None
        assert verification.used_at is None

    def test_previous_codes_stay_valid(self, db_session, store, clock):
        first = create_verification_code(db_session, store.id, EMAIL, clock(), TTL)
        create_verification_code(db_session, store.id, EMAIL, clock(), TTL)

        assert consume_verification_code(db_session, store.id, EMAIL, first.code, clock()) is not None


class TestConsumeVerificationCode:
    def test_consumes_once(self, db_session, store, clock):
        verification = create_verification_code(db_session, store.id, EMAIL, clock(), TTL)

        consumed = consume_verification_code(db_session, store.id, EMAIL, verification.code, clock())
        again = consume_verification_code(db_session, store.id, EMAIL, verification.code, clock())

        assert consumed is not None
        assert consumed.used_at is not None
        assert again is None

    def test_wrong_code(self, db_session, store, clock):
        verification = create_verification_code(db_session, store.id, EMAIL, clock(), TTL)
        wrong = "100000" if verification.code != "100000" else "100001"

        assert consume_verification_code(db_session, store.id, EMAIL, wrong, clock()) is None

    def test_expired_code(self, db_session, store, clock):
        verification = create_verification_code(db_session, store.id, EMAIL, clock(), TTL)

        clock.advance(minutes=10)

        assert consume_verification_code(db_session, store.id, EMAIL, verification.code, clock()) is None

    def test_valid_just_before_expiry(self, db_session, store, clock):
        verification = create_verification_code(db_session, store.id, EMAIL, clock(), TTL)

        clock.advance(minutes=9, seconds=59)

        assert consume_verification_code(db_session, store.id, EMAIL, verification.code, clock()) is not None

    def test_scoped_to_store(self, db_session, store, other_store, clock):
        verification = create_verification_code(db_session, store.id, EMAIL, clock(), TTL)

        assert consume_verification_code(db_session, other_store.id, EMAIL, verification.code, clock()) is None

    def test_scoped_to_email(self, db_session, store, clock):
        verification = create_verification_code(db_session, store.id, EMAIL, clock(), TTL)

        assert consume_verification_code(
            db_session, store.id, "someone.else@example.com", verification.code, clock()
        ) is None

    def test_mark_used_loses_race(self, db_session, store, clock):
        verification = create_verification_code(db_session, store.id, EMAIL, clock(), TTL)

        assert _mark_used(db_session, verification.id, clock()) is True
        assert _mark_used(db_session, verification.id, clock()) is False


class TestInstantAccessTokens:
    def test_create_and_consume(self, db_session, store, clock):
        verification = create_instant_access_token(
            db_session, store.id, EMAIL, clock(), timedelta(days=7), reservation_id="res_123"
        )

        assert verification.type == VerificationCodeType.INSTANT_ACCESS.value
        assert len(verification.token) == 32
        assert verification.reservation_id == "res_123"

        consumed = consume_instant_access_token(db_session, store.id, verification.token, clock())
        assert consumed is not None
        assert consume_instant_access_token(db_session, store.id, verification.token, clock()) is None

    def test_expired_token(self, db_session, store, clock):
        verification = create_instant_access_token(db_session, store.id, EMAIL, clock(), timedelta(days=7))

        clock.advance(days=7, seconds=1)

        assert consume_instant_access_token(db_session, store.id, verification.token, clock()) is None

    def test_token_not_redeemable_as_code(self, db_session, store, clock):
        create_instant_access_token(db_session, store.id, EMAIL, clock(), timedelta(days=7))

        assert consume_verification_code(db_session, store.id, EMAIL, "000000", clock()) is None

    def test_scoped_to_store(self, db_session, store, other_store, clock):
        verification = create_instant_access_token(db_session, store.id, EMAIL, clock(), timedelta(days=7))

        assert consume_instant_access_token(db_session, other_store.id, verification.token, clock()) is None


class TestCleanupExpiredCodes:
    def test_deletes_only_rows_past_retention(self, db_session, store, clock):
        create_verification_code(db_session, store.id, EMAIL, clock(), TTL)
        clock.advance(days=8)
        create_verification_code(db_session, store.id, EMAIL, clock(), TTL)

        deleted = cleanup_expired_codes(db_session, clock(), timedelta(days=7))

        assert deleted == 1
        assert db_session.query(VerificationCode).count() == 1
