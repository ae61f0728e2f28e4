"""
Small helpers shared across pytreesim modules.
"""


def normalize_code(code) -> str:
    """Normalize a code string for lookups: strip whitespace and uppercase.

    Example:
        >>> normalize_code(" oak ")
        'OAK'
    """
    return str(code).strip().upper()
