"""
Halapi SDK - Utility Functions
"""

import uuid


def generate_uuid() -> str:
    """
    Generate a random RFC 4122 version 4 UUID string.

    Handy for client-side conversation or message identifiers.

    Example:
        >>> from halapi import generate_uuid
        >>> generate_uuid()
        '3b241101-e2bb-4255-8caf-4136c566a962'
    """
    return str(uuid.uuid4())
