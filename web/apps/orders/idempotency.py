"""Idempotency utilities for safely handling duplicate checkout requests.

This module stores and retrieves idempotency keys to de-duplicate
``POST /payment/create`` retries. Keys are scoped to the caller, so two users
sending the same key never see each other's responses. A record starts with
``response_status == 0`` (in progress) and is finalized with the successful
response; a failed attempt deletes it so the key can be retried.
"""

import hashlib
import json

from django.db import IntegrityError, transaction

from .models import IdempotencyKey

IN_PROGRESS = 0


class IdempotencyConflict(Exception):
    """The key was reused with a different payload."""


def _hash(user_id: str, payload: dict) -> str:
    """SHA-256 of the caller id and the normalized JSON payload."""
    body = json.dumps({"user": user_id, "payload": payload}, sort_keys=True, separators=(",", ":"), default=str)
    return hashlib.sha256(body.encode("utf-8")).hexdigest()


def _scoped_key(user_id: str, key: str) -> str:
    return f"{user_id}:{key}"[:200]


@transaction.atomic
def get_or_create_idempotent(user_id: str, key: str, payload: dict):
    """Get-or-create an idempotency record for the given key and payload.

    Behavior:
        - First request with a new key: create a record and return
          (False, rec); the caller finalizes it.
        - Retry with the same key and payload: lock and return (True, rec).
          ``rec.response_status`` is ``IN_PROGRESS`` while the first request
          is still running.
        - Same key with a different payload: raise ``IdempotencyConflict``.

    The create path runs in a nested savepoint so an IntegrityError only
    rolls back that block; the existing-record path takes a row lock.

    Returns:
        tuple[bool, IdempotencyKey]: (existing, rec).
    """
    h = _hash(user_id, payload)
    scoped = _scoped_key(user_id, key)

    try:
        with transaction.atomic():
            rec = IdempotencyKey.objects.create(
                key=scoped, request_hash=h, response_status=IN_PROGRESS, response_body={}
            )
            return False, rec
    except IntegrityError:
        rec = IdempotencyKey.objects.select_for_update().get(key=scoped)
        if rec.request_hash != h:
            raise IdempotencyConflict(key)
        return True, rec


def finalize(rec: IdempotencyKey, status_code: int, body: dict, order_id=None):
    """Persist the response of the first request so retries can replay it."""
    rec.response_status = status_code
    rec.response_body = body
    if order_id is not None:
        rec.order_id = order_id
    rec.save(update_fields=["response_status", "response_body", "order_id"])
