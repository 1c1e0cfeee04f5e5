"""
Tenant index naming.

Maps a tenant identifier to the alias name its product documents are
written through. Backing indexes are named ``<alias>-000001``.
"""

import re

INDEX_PREFIX = "products"
DEFAULT_INDEX_NAME = f"{INDEX_PREFIX}-default"
MAX_SEGMENT_LENGTH = 60
BACKING_INDEX_SUFFIX = "-000001"

_INVALID_CHARS = re.compile(r"[^a-z0-9_-]")


def normalize_index_segment(value: str) -> str:
    """Lower-case, replace unsupported characters with ``-`` and trim."""
    if not value or not value.strip():
        return ""

    sanitized = _INVALID_CHARS.sub("-", value.strip().lower()).strip("-_")
    return sanitized[:MAX_SEGMENT_LENGTH]


def resolve_index_name(tenant_id: str) -> str:
    """
    Resolve the normalized alias name for a tenant.

    Args:
        tenant_id: Tenant identifier as stored on the job

    Returns:
        Alias name such as ``products-acme``, or ``products-default`` when
        nothing usable is left after normalization
    """
    segment = normalize_index_segment(tenant_id)
    if not segment:
        return DEFAULT_INDEX_NAME
    return f"{INDEX_PREFIX}-{segment}"


def backing_index_name(alias: str) -> str:
    return f"{alias}{BACKING_INDEX_SUFFIX}"
