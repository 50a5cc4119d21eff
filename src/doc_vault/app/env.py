"""Deployment environment for the vault: only "is this production" matters."""

from __future__ import annotations

import os
from functools import cache

PROD_NAMES = frozenset({"prod", "production"})


@cache
def is_production() -> bool:
    """True when APP_ENV (or VAULT_ENV) names a production deployment.

    Anything else, including an unset variable, counts as non-production:
    plain logs and an ephemeral master key are allowed there.
    """
    raw = os.getenv("APP_ENV") or os.getenv("VAULT_ENV") or ""
    return raw.strip().lower() in PROD_NAMES


IS_PROD: bool = is_production()


def pick(*, prod, nonprod):
    """Return ``prod`` in production, ``nonprod`` everywhere else."""
    return prod if is_production() else nonprod
