"""Declarations of the secrets a service needs at start-up."""

from __future__ import annotations

from typing import Mapping, Sequence

Required = dict[str, list[str]]
"""Secret domain mapped to the secret types required within it."""


def reduce_required(*required: Mapping[str, Sequence[str]]) -> Required:
    """Merge requirement sets, keeping first-seen order and dropping duplicates."""
    reduced: Required = {}
    for requirement in required:
        for domain, secret_types in requirement.items():
            merged = reduced.setdefault(domain, [])
            for secret_type in secret_types:
                if secret_type not in merged:
                    merged.append(secret_type)
    return reduced
