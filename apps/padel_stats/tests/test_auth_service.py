"""
Unit tests for authentication service.
Tests password hashing, JWT tokens, and email validation.
"""
import pytest
import jwt
from datetime import timedelta
from padel_stats.services import auth_service


class TestPasswordHashing:
    """Tests for password hashing and verification."""

    def test_hash_password(self):
        """Test password hashing produces different hashes for same password."""
        password = "test_password_123"
        hash1 = auth_service.hash_password(password)
        hash2 = auth_service.hash_password(password)

        # Hashes should be different (due to salt)
        assert hash1 != hash2
        # But both should verify correctly
        assert auth_service.verify_password(password, hash1)
        assert auth_service.verify_password(password, hash2)

    def test_verify_password_incorrect(self):
        """Test password verification with incorrect password."""
        password_hash = auth_service.hash_password("test_password_123")

        assert auth_service.verify_password("wrong_password", password_hash) is False

    def test_verify_password_empty(self):
        """Test password verification with empty inputs."""
        password_hash = auth_service.hash_password("test_password_123")

        assert auth_service.verify_password("", password_hash) is False
        assert auth_service.verify_password("test_password_123", "") is False

    def test_verify_password_malformed_hash(self):
        """A stored value that is not a bcrypt hash never verifies."""
        assert auth_service.verify_password("test_password_123", "not-a-hash") is False


class TestJWTTokens:
    """Tests for JWT token creation and verification."""

    def test_verify_token_valid(self):
        token = auth_service.create_access_token({"user_id": 1, "username": "ana"})
        decoded = auth_service.verify_token(token)

        assert decoded is not None
        assert decoded["user_id"] == 1
        assert decoded["username"] == "ana"
        assert decoded["type"] == "access"
        assert "exp" in decoded

    def test_verify_token_invalid(self):
        assert auth_service.verify_token("invalid.token.here") is None

    def test_verify_token_expired(self):
        token = auth_service.create_access_token({"user_id": 1}, expires_delta=timedelta(seconds=-1))
        assert auth_service.verify_token(token) is None

    def test_verify_token_wrong_secret(self):
        token = jwt.encode(
            {"user_id": 1, "type": "access"}, "another-secret", algorithm=auth_service.JWT_ALGORITHM
        )
        assert auth_service.verify_token(token) is None

    def test_verify_token_requires_access_type(self):
        token = jwt.encode(
            {"user_id": 1, "type": "refresh"},
            auth_service.JWT_SECRET_KEY,
            algorithm=auth_service.JWT_ALGORITHM,
        )
        assert auth_service.verify_token(token) is None

    def test_create_access_token_does_not_mutate_input(self):
        data = {"user_id": 3}
        auth_service.create_access_token(data)
        assert data == {"user_id": 3}


class TestEmailValidation:
    """Tests for email normalization."""

    def test_normalize_email(self):
        assert auth_service.normalize_email("Test@Example.COM") == "test@example.com"
        assert auth_service.normalize_email("  Test@Example.COM  ") == "test@example.com"

    @pytest.mark.parametrize("email", ["invalid", "", "no-domain@", "a b@c.com", None])
    def test_normalize_email_invalid(self, email):
        with pytest.raises(ValueError):
            auth_service.normalize_email(email)
