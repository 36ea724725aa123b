import secrets

DEFAULT_TOKEN_BYTES = 32


def generate_token(num_bytes: int = DEFAULT_TOKEN_BYTES) -> str:
    """Return an unguessable url-safe token string."""
    if num_bytes < 16:
        raise ValueError(f"Token entropy too low: {num_bytes} bytes (minimum 16)")
    return secrets.token_urlsafe(num_bytes)
