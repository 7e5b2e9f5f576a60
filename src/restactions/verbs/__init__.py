"""Verb pipelines.

Each verb runs normalize, before hook, store operation, after hook and
error normalization, strictly in that order.
"""

from restactions.verbs.delete import delete_model, delete_record
from restactions.verbs.get import fetch, fresh, get, get_by_id
from restactions.verbs.post import post_model, post_record
from restactions.verbs.update import patch_model, patch_record, put_model, put_record

__all__ = [
    "delete_model",
    "delete_record",
    "fetch",
    "fresh",
    "get",
    "get_by_id",
    "patch_model",
    "patch_record",
    "post_model",
    "post_record",
    "put_model",
    "put_record",
]
