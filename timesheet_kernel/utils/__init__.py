"""Utility modules for the timesheet kernel."""

from timesheet_kernel.utils.hashing import canonicalize_json, hash_payload

__all__ = [
    "canonicalize_json",
    "hash_payload",
]
