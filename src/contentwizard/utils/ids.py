"""Identifier generation utilities for the content wizard."""

import uuid


def generate_id(prefix: str, length: int = 12) -> str:
    """
    Generate a random prefixed identifier.

    Args:
        prefix: Entity prefix without separator (e.g. "section", "refinement")
        length: Number of hex characters taken from a random UUID v4

    Returns:
        Identifier such as "section_3f2a9c01b7de"

    Example:
        >>> generate_id("mapping")
        "mapping_a1b2c3d4e5f6"
    """
    return f"{prefix}_{uuid.uuid4().hex[:length]}"


def generate_random_uuid() -> str:
    """Generate a random UUID v4 string, used for template component instances."""
    return str(uuid.uuid4())


# Fixed namespace so derived identifiers are stable across runs
CONTENTWIZARD_NAMESPACE = uuid.UUID("6b1f4d2e-93a7-4c5e-b0d8-2f7e91c4a356")


def generate_deterministic_id(prefix: str, *parts: str, length: int = 12) -> str:
    """
    Derive a prefixed identifier from content with UUID v5.

    The same parts always yield the same identifier, which keeps mapping
    output reproducible for identical inputs.

    Example:
        >>> generate_deterministic_id("mapping", "section_001", "c0ffee")
        "mapping_5d41402abc4b"
    """
    digest = uuid.uuid5(CONTENTWIZARD_NAMESPACE, "\x1f".join(parts))
    return f"{prefix}_{digest.hex[:length]}"
