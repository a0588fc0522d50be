"""Password and display-name validation functions."""

PASSWORD_MIN_LENGTH = 8
PASSWORD_MAX_LENGTH = 100
PASSWORD_MAX_BYTES = 72  # bcrypt input limit
NAME_MIN_LENGTH = 2
NAME_MAX_LENGTH = 100


def validate_password_strength(password: str) -> str:
    """Validate password strength requirements.

    Requirements:
    - Between 8 and 100 characters (also enforced by Field lengths)
    - At most 72 bytes once UTF-8 encoded
    - At least one uppercase letter (A-Z)
    - At least one digit (0-9)

    Args:
        password: Password string to validate

    Returns:
        The validated password string

    Raises:
        ValueError: If password doesn't meet strength requirements

    Examples:
        >>> validate_password_strength("Password123")
        'Password123'
        >>> validate_password_strength("password123")
        Traceback (most recent call last):
        ...
        ValueError: Password must contain at least one uppercase letter

    """
    if len(password) < PASSWORD_MIN_LENGTH:
        raise ValueError(f"Password must be at least {PASSWORD_MIN_LENGTH} characters")
    if len(password) > PASSWORD_MAX_LENGTH:
        raise ValueError(f"Password must be at most {PASSWORD_MAX_LENGTH} characters")
    if len(password.encode("utf-8")) > PASSWORD_MAX_BYTES:
        raise ValueError(f"Password must be at most {PASSWORD_MAX_BYTES} bytes")
    if not any(c.isupper() for c in password):
        raise ValueError("Password must contain at least one uppercase letter")
    if not any(c.isdigit() for c in password):
        raise ValueError("Password must contain at least one digit")
    return password


def validate_display_name(name: str) -> str:
    """Trim a display name and check its length (2-100 characters)."""
    name = name.strip()
    if len(name) < NAME_MIN_LENGTH:
        raise ValueError(f"Name must be at least {NAME_MIN_LENGTH} characters")
    if len(name) > NAME_MAX_LENGTH:
        raise ValueError(f"Name must be at most {NAME_MAX_LENGTH} characters")
    return name
