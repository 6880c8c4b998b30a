"""Random identifier helpers.

Identifiers use the URL-safe nanoid alphabet so they can be embedded in
bucket prefixes, vault paths and project names without escaping.
"""

import secrets
import string

ID_ALPHABET = string.ascii_letters + string.digits + "_-"
DEFAULT_ID_LENGTH = 12


def create_id(length: int = DEFAULT_ID_LENGTH) -> str:
    """Generate a random identifier.

    Args:
        length: Number of characters in the identifier

    Returns:
        Random string drawn from the nanoid alphabet

    Raises:
        ValueError: If length is not positive
    """
    if length <= 0:
        raise ValueError("Identifier length must be positive")
    return "".join(secrets.choice(ID_ALPHABET) for _ in range(length))
