"""Tests for the shared validators module."""

import pytest

from src.shared.validators.password import validate_display_name, validate_password_strength


class TestPasswordValidation:
    """Test password strength validation."""

    def test_valid_password_with_all_requirements(self):
        """Test password with all requirements passes validation."""
        result = validate_password_strength("SecurePass123")
        assert result == "SecurePass123"

    def test_valid_password_with_special_characters(self):
        result = validate_password_strength("Secure@Pass123!")
        assert result == "Secure@Pass123!"

    def test_valid_password_minimum_length(self):
        """Eight characters with an uppercase letter and a digit is enough."""
        assert validate_password_strength("Abcdef12") == "Abcdef12"

    def test_lowercase_is_not_required(self):
        assert validate_password_strength("SECUREPASS123") == "SECUREPASS123"

    def test_password_too_short_fails(self):
        with pytest.raises(ValueError, match="at least 8 characters"):
            validate_password_strength("Abcde12")

    def test_password_too_long_fails(self):
        with pytest.raises(ValueError, match="at most 100 characters"):
            validate_password_strength("A1" + "a" * 99)

    def test_password_without_uppercase_fails(self):
        """Test password without uppercase letter fails validation."""
        with pytest.raises(ValueError, match="Password must contain at least one uppercase letter"):
            validate_password_strength("securepass123")

    def test_password_without_digit_fails(self):
        """Test password without digit fails validation."""
        with pytest.raises(ValueError, match="Password must contain at least one digit"):
            validate_password_strength("SecurePass")

    def test_password_with_spaces(self):
        """Test password with spaces passes if requirements are met."""
        result = validate_password_strength("Secure Pass 123")
        assert result == "Secure Pass 123"

    def test_password_with_unicode_characters(self):
        result = validate_password_strength("Sécure123")
        assert result == "Sécure123"

    def test_password_at_byte_limit(self):
        long_password = "A1" + "a" * 70
        assert validate_password_strength(long_password) == long_password

    def test_password_over_byte_limit_fails(self):
        with pytest.raises(ValueError, match="at most 72 bytes"):
            validate_password_strength("Aa1" + "x" * 77)

    def test_multibyte_password_counts_bytes(self):
        # 43 characters, 83 bytes
        with pytest.raises(ValueError, match="at most 72 bytes"):
            validate_password_strength("Aa1" + "é" * 40)


class TestDisplayNameValidation:
    def test_name_is_trimmed(self):
        assert validate_display_name("  Ana  ") == "Ana"

    def test_name_too_short_after_trim(self):
        with pytest.raises(ValueError, match="at least 2 characters"):
            validate_display_name("  A ")

    def test_name_too_long(self):
        with pytest.raises(ValueError, match="at most 100 characters"):
            validate_display_name("x" * 101)
