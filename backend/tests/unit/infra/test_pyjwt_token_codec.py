from __future__ import annotations

from datetime import timedelta

import jwt
import pytest

from staffauth.infra.jwt.pyjwt_token_codec import PyJWTTokenCodec, TokenSettings
from staffauth.services._shared.errors import (
    ConfigError,
    ExpiredTokenError,
    InvalidSignatureError,
    MalformedTokenError,
)
from staffauth.services._shared.ports.token_codec import ClaimSet, TokenKind
from tests.helpers.clock import FrozenClock

CLAIMS = ClaimSet(user_id=7, email="e100@example.com", phone_number="+15550000000", role="USER")


@pytest.fixture()
def clock() -> FrozenClock:
    return FrozenClock()


@pytest.fixture()
def settings() -> TokenSettings:
    return TokenSettings(
        access_secret="unit-access-secret-0123456789abcdef",
        refresh_secret="unit-refresh-secret-0123456789abcdef",
        access_expires=timedelta(minutes=15),
        refresh_expires=timedelta(days=7),
    )


@pytest.fixture()
def codec(settings, clock) -> PyJWTTokenCodec:
    return PyJWTTokenCodec(settings, clock=clock)


class TestIssueAndVerify:
    @pytest.mark.parametrize("kind", [TokenKind.ACCESS, TokenKind.REFRESH])
    def test_round_trip_preserves_claims(self, codec, clock, kind):
        token = codec.issue(kind, CLAIMS)

        claims = codec.verify(kind, token)

        assert claims.claim_set == CLAIMS
        assert claims.kind is kind
        assert claims.issued_at == clock.now.replace(microsecond=0)
        assert claims.expires_at == claims.issued_at + codec.lifetime(kind)

    def test_pair_carries_identical_payload(self, codec):
        pair = codec.issue_pair(CLAIMS)

        access = codec.verify(TokenKind.ACCESS, pair.access_token)
        refresh = codec.verify(TokenKind.REFRESH, pair.refresh_token)

        assert access.claim_set == refresh.claim_set == CLAIMS
        assert access.expires_at < refresh.expires_at

    def test_tokens_minted_in_same_second_differ(self, codec):
        first = codec.issue(TokenKind.REFRESH, CLAIMS)
        second = codec.issue(TokenKind.REFRESH, CLAIMS)

        assert first != second

    def test_payload_uses_string_subject_and_kind(self, codec):
        token = codec.issue(TokenKind.ACCESS, CLAIMS)

        payload = jwt.decode(token, options={"verify_signature": False})

        assert payload["sub"] == "7"
        assert payload["type"] == "access"
        assert payload["role"] == "USER"
        assert "jti" in payload


class TestExpiry:
    @pytest.mark.parametrize(
        ("kind", "lifetime"),
        [(TokenKind.ACCESS, timedelta(minutes=15)), (TokenKind.REFRESH, timedelta(days=7))],
    )
    def test_valid_until_lifetime_then_expired(self, codec, clock, kind, lifetime):
        token = codec.issue(kind, CLAIMS)

        clock.advance(seconds=lifetime.total_seconds() - 1)
        assert codec.verify(kind, token).user_id == CLAIMS.user_id

        clock.advance(seconds=1)
        with pytest.raises(ExpiredTokenError):
            codec.verify(kind, token)


class TestRejections:
    def test_access_token_rejected_as_refresh(self, codec):
        access = codec.issue(TokenKind.ACCESS, CLAIMS)

        # Signed with the access secret -> signature check fails first
        with pytest.raises(InvalidSignatureError):
            codec.verify(TokenKind.REFRESH, access)

    def test_kind_mismatch_with_shared_secret_is_malformed(self, clock):
        # Only reachable if both kinds verify under the same secret
        settings = TokenSettings(access_secret="same", refresh_secret="same")
        codec = PyJWTTokenCodec(settings, clock=clock)
        refresh = codec.issue(TokenKind.REFRESH, CLAIMS)

        with pytest.raises(MalformedTokenError):
            codec.verify(TokenKind.ACCESS, refresh)

    def test_foreign_secret_is_invalid_signature(self, codec, settings, clock):
        other = PyJWTTokenCodec(
            TokenSettings(access_secret="other-access", refresh_secret="other-refresh"),
            clock=clock,
        )
        token = other.issue(TokenKind.ACCESS, CLAIMS)

        with pytest.raises(InvalidSignatureError):
            codec.verify(TokenKind.ACCESS, token)

    @pytest.mark.parametrize("garbage", ["", "   ", "not-a-jwt", "a.b.c"])
    def test_garbage_is_malformed(self, codec, garbage):
        with pytest.raises(MalformedTokenError):
            codec.verify(TokenKind.ACCESS, garbage)

    def test_missing_required_claim_is_malformed(self, codec, settings):
        token = jwt.encode({"sub": "7", "type": "access"}, settings.access_secret, algorithm="HS256")

        with pytest.raises(MalformedTokenError):
            codec.verify(TokenKind.ACCESS, token)

    def test_unset_secret_raises_config_error(self, clock):
        codec = PyJWTTokenCodec(TokenSettings(access_secret="", refresh_secret="r"), clock=clock)

        with pytest.raises(ConfigError):
            codec.issue(TokenKind.ACCESS, CLAIMS)


class TestSettings:
    def test_from_config_parses_durations(self):
        settings = TokenSettings.from_config(
            {
                "JWT_ACCESS_SECRET": "a",
                "JWT_REFRESH_SECRET": "b",
                "JWT_ACCESS_EXPIRES": "10m",
                "JWT_REFRESH_EXPIRES": "2d",
            }
        )

        assert settings.access_expires == timedelta(minutes=10)
        assert settings.refresh_expires == timedelta(days=2)

    def test_from_config_rejects_bad_duration(self):
        with pytest.raises(ConfigError):
            TokenSettings.from_config({"JWT_ACCESS_EXPIRES": "soon"})

    @pytest.mark.parametrize(
        ("access", "refresh"),
        [("", "refresh"), ("access", ""), ("shared", "shared")],
    )
    def test_validate_rejects_unusable_secrets(self, access, refresh):
        with pytest.raises(ConfigError):
            TokenSettings(access_secret=access, refresh_secret=refresh).validate()

    def test_validate_accepts_distinct_secrets(self, settings):
        settings.validate()
