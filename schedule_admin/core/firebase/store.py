"""Cloud Firestore operations: profiles, departments and cascade deletes."""
from __future__ import annotations
import logging
from concurrent.futures import ThreadPoolExecutor, wait, FIRST_EXCEPTION
from typing import Iterable, Optional

from firebase_admin import firestore
from google.api_core import exceptions as google_exceptions
from google.cloud.firestore_v1.base_query import FieldFilter

from .client import FirebaseClient
from .exceptions import ProviderError
from schedule_admin.config import AppConfig
from schedule_admin.core.models import Department, UserProfile

logger = logging.getLogger(__name__)

# Sentinel replaced by the commit time on the server
SERVER_TIMESTAMP = firestore.SERVER_TIMESTAMP

MAX_COMMIT_WORKERS = 8


def chunked(items: list, size: int) -> Iterable[list]:
    """Yield consecutive slices of at most ``size`` items."""
    for start in range(0, len(items), size):
        yield items[start:start + size]


class ProfileStore:
    """Service for the Firestore collections this API reads and writes."""

    def __init__(self, client: FirebaseClient, cfg: AppConfig):
        """Initialize profile store.

        Args:
            client: Initialised Firebase client
            cfg: Application config (collection names, batch size)
        """
        self.client = client
        self.users_collection = cfg.users_collection
        self.departments_collection = cfg.departments_collection
        self.schedules_collection = cfg.schedules_collection
        self.batch_size = cfg.cascade_batch_size

    @property
    def _db(self):
        return self.client.db

    @property
    def _timeout(self) -> float:
        return self.client.timeout

    # ─────────────────────────────────────────────────────────────────────
    # Profiles
    # ─────────────────────────────────────────────────────────────────────
    def get_profile(self, uid: str) -> Optional[UserProfile]:
        """Point lookup of the profile document; None when absent."""
        try:
            snap = self._db.collection(self.users_collection).document(uid).get(timeout=self._timeout)
        except google_exceptions.GoogleAPICallError as exc:
            raise ProviderError("firestore.get_profile", str(exc)) from exc
        if not snap.exists:
            return None
        return UserProfile.from_document(uid, snap.to_dict() or {})

    def create_profile(self, uid: str, fields: dict) -> None:
        """Write a new profile with a server-assigned creation timestamp."""
        payload = dict(fields, uid=uid, createdAt=SERVER_TIMESTAMP, updatedAt=SERVER_TIMESTAMP)
        try:
            self._db.collection(self.users_collection).document(uid).set(
                payload, merge=True, timeout=self._timeout
            )
        except google_exceptions.GoogleAPICallError as exc:
            raise ProviderError("firestore.create_profile", str(exc)) from exc

    def merge_profile(self, uid: str, fields: dict) -> None:
        """Merge only the supplied fields plus a server-assigned update timestamp."""
        payload = dict(fields, updatedAt=SERVER_TIMESTAMP)
        try:
            self._db.collection(self.users_collection).document(uid).set(
                payload, merge=True, timeout=self._timeout
            )
        except google_exceptions.GoogleAPICallError as exc:
            raise ProviderError("firestore.merge_profile", str(exc)) from exc

    def delete_profile(self, uid: str) -> None:
        """Delete the profile document; deleting a missing document is a no-op."""
        try:
            self._db.collection(self.users_collection).document(uid).delete(timeout=self._timeout)
        except google_exceptions.NotFound:
            return
        except google_exceptions.GoogleAPICallError as exc:
            raise ProviderError("firestore.delete_profile", str(exc)) from exc

    def list_profiles(self, org_id: Optional[str] = None, department_id: Optional[str] = None) -> list[UserProfile]:
        """Filtered query over profiles, ordered by email."""
        query = self._db.collection(self.users_collection)
        if org_id is not None:
            query = query.where(filter=FieldFilter("orgId", "==", org_id))
        if department_id is not None:
            query = query.where(filter=FieldFilter("departmentId", "==", department_id))
        try:
            snaps = query.get(timeout=self._timeout)
        except google_exceptions.GoogleAPICallError as exc:
            raise ProviderError("firestore.list_profiles", str(exc)) from exc

        profiles = [UserProfile.from_document(snap.id, snap.to_dict() or {}) for snap in snaps]
        return sorted(profiles, key=lambda profile: (profile.email or "", profile.uid))

    # ─────────────────────────────────────────────────────────────────────
    # Departments
    # ─────────────────────────────────────────────────────────────────────
    def get_department(self, department_id: str) -> Optional[Department]:
        try:
            snap = self._db.collection(self.departments_collection).document(department_id).get(
                timeout=self._timeout
            )
        except google_exceptions.GoogleAPICallError as exc:
            raise ProviderError("firestore.get_department", str(exc)) from exc
        if not snap.exists:
            return None
        data = snap.to_dict() or {}
        return Department(id=department_id, org_id=data.get("orgId"))

    # ─────────────────────────────────────────────────────────────────────
    # Cascade delete
    # ─────────────────────────────────────────────────────────────────────
    def delete_schedules_created_by(self, uid: str) -> int:
        """Delete every schedule with ``createdBy == uid``.

        Deletes are grouped into batches of ``batch_size`` and all batch
        commits run concurrently; the call returns after every commit has
        finished. Returns the number of deleted documents.

        Raises:
            ProviderError: Query or any batch commit failed. Commits not yet
                started when the first failure is seen are cancelled.
        """
        query = self._db.collection(self.schedules_collection).where(
            filter=FieldFilter("createdBy", "==", uid)
        )
        try:
            refs = [snap.reference for snap in query.get(timeout=self._timeout)]
        except google_exceptions.GoogleAPICallError as exc:
            raise ProviderError("firestore.query_schedules", str(exc)) from exc

        if not refs:
            return 0

        batches = []
        for chunk in chunked(refs, self.batch_size):
            batch = self._db.batch()
            for ref in chunk:
                batch.delete(ref)
            batches.append(batch)

        logger.info("Cascade delete for uid=%s: %d docs in %d batch(es)", uid, len(refs), len(batches))

        workers = min(len(batches), MAX_COMMIT_WORKERS)
        executor = ThreadPoolExecutor(max_workers=workers, thread_name_prefix="cascade-commit")
        try:
            futures = [executor.submit(batch.commit, timeout=self._timeout) for batch in batches]
            done, _pending = wait(futures, return_when=FIRST_EXCEPTION)
            failed = next((future for future in done if future.exception() is not None), None)
            if failed is not None:
                executor.shutdown(wait=True, cancel_futures=True)
                exc = failed.exception()
                raise ProviderError("firestore.batch_commit", str(exc)) from exc
        finally:
            executor.shutdown(wait=True)

        return len(refs)
