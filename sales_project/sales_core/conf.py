"""
Engine settings with their defaults.

Read lazily on every call so `override_settings` in tests takes effect.
"""
from django.conf import settings

DEFAULT_NUMBERING = {
    "quote": {"prefix": "DV", "include_year": True, "padding": 3},
    "delivery_note": {"prefix": "BL", "include_year": True, "padding": 3},
    "purchase_order": {"prefix": "CF", "include_year": True, "padding": 3},
    "invoice": {"prefix": "FA", "include_year": True, "padding": 3},
}

PRICE_POLICIES = ("warn", "reject")


def numbering_config(family):
    """Return {prefix, include_year, padding} for a document family."""
    if family not in DEFAULT_NUMBERING:
        raise KeyError(f"Unknown document family: {family}")
    config = dict(DEFAULT_NUMBERING[family])
    config.update(getattr(settings, "SALES_NUMBERING", {}).get(family, {}))
    return config


def credit_note_prefix():
    return getattr(settings, "SALES_CREDIT_NOTE_PREFIX", "AV")


def payment_term_days():
    return int(getattr(settings, "SALES_PAYMENT_TERM_DAYS", 30))


def consolidation_price_policy():
    policy = getattr(settings, "SALES_CONSOLIDATION_PRICE_POLICY", "warn")
    if policy not in PRICE_POLICIES:
        raise ValueError(
            f"SALES_CONSOLIDATION_PRICE_POLICY must be one of {PRICE_POLICIES}, got {policy!r}"
        )
    return policy


def consolidation_marks_delivered():
    return bool(getattr(settings, "SALES_CONSOLIDATION_MARKS_DELIVERED", False))


def allow_negative_stock():
    return bool(getattr(settings, "SALES_ALLOW_NEGATIVE_STOCK", True))
