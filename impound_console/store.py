"""
Record store client.

``RecordStore`` is the document-store contract the console depends on:
continuous per-collection subscriptions that deliver a full ordered snapshot
plus a change list on every mutation, and one-shot writes (including an
all-or-nothing batch update).

``InMemoryStore`` implements it in process and persists every collection to
a JSON state file after each mutation.
"""
import copy
import json
import os
import threading
from abc import ABC, abstractmethod
from datetime import datetime, timezone
from enum import Enum
from typing import Callable, Dict, List, Optional, Tuple
from uuid import uuid4

from pydantic import BaseModel

from . import activity
from .errors import StoreWriteError, SubscriptionError

STATE_FILE = os.environ.get("STATE_FILE", os.path.join("data", "state.json"))
UPLOAD_DIR = os.environ.get("UPLOAD_DIR", os.path.join("static", "uploads"))
UPLOAD_URL_PREFIX = "/static/uploads"


def utc_now() -> str:
    return datetime.now(timezone.utc).isoformat()


class ChangeType(str, Enum):
    ADDED = "added"
    MODIFIED = "modified"
    REMOVED = "removed"


class DocumentChange(BaseModel):
    type: ChangeType
    doc_id: str
    data: Optional[dict] = None


class Snapshot(BaseModel):
    collection: str
    docs: List[dict]
    changes: List[DocumentChange]


SnapshotHandler = Callable[[Snapshot], None]
ErrorHandler = Callable[[SubscriptionError], None]
BatchOp = Tuple[str, str, dict]
# receives the current document, returns the patch to merge or raises to abort
Updater = Callable[[dict], dict]


class Subscription:
    def __init__(self, store: "RecordStore", collection: str, order_field: str, direction: str,
                 on_snapshot: SnapshotHandler, on_error: Optional[ErrorHandler] = None):
        self.subscription_id = uuid4().hex
        self.store = store
        self.collection = collection
        self.order_field = order_field
        self.direction = direction
        self.on_snapshot = on_snapshot
        self.on_error = on_error
        self.active = True

    def unsubscribe(self) -> None:
        if self.active:
            self.active = False
            self.store._detach(self)


class RecordStore(ABC):
    @abstractmethod
    def subscribe(self, collection: str, order_field: str, direction: str,
                  on_snapshot: SnapshotHandler, on_error: Optional[ErrorHandler] = None) -> Subscription:
        """Start a subscription; the first snapshot is delivered immediately."""

    @abstractmethod
    def get_one(self, collection: str, doc_id: str) -> Optional[dict]:
        ...

    @abstractmethod
    def list_all(self, collection: str) -> List[dict]:
        ...

    @abstractmethod
    def write_one(self, collection: str, doc_id: str, patch: dict) -> None:
        """Merge ``patch`` into an existing document."""

    @abstractmethod
    def update_one(self, collection: str, doc_id: str, updater: Updater) -> dict:
        """Read the current document and merge ``updater(doc)`` into it as one step.

        No other write can land between the read and the merge, so a check made
        by ``updater`` holds when its patch is applied. Returns the patch.
        """

    @abstractmethod
    def create_one(self, collection: str, fields: dict, doc_id: Optional[str] = None) -> str:
        """Create a document; an explicit ``doc_id`` overwrites any existing one."""

    @abstractmethod
    def delete_one(self, collection: str, doc_id: str) -> None:
        ...

    @abstractmethod
    def write_batch(self, ops: List[BatchOp]) -> None:
        """Apply every (collection, id, patch) or none of them."""

    @abstractmethod
    def upload_file(self, data: bytes, path_hint: str) -> str:
        """Store bytes and return an opaque content address."""

    def _detach(self, subscription: Subscription) -> None:
        pass


class InMemoryStore(RecordStore):
    def __init__(self, state_file: Optional[str] = STATE_FILE, upload_dir: str = UPLOAD_DIR):
        self.state_file = state_file
        self.upload_dir = upload_dir
        self.collections: Dict[str, Dict[str, dict]] = {}
        self._subscriptions: List[Subscription] = []
        # one lock for mutation + delivery keeps each subscription's snapshots ordered
        self._lock = threading.RLock()

    # --- Persistence ---
    def _ensure_state_dir(self):
        directory = os.path.dirname(self.state_file)
        if directory:
            os.makedirs(directory, exist_ok=True)

    def save_state(self):
        if not self.state_file:
            return
        self._ensure_state_dir()
        data = {
            "collections": self.collections,
            "logs": activity.logs[-activity.MAX_PERSISTED_ENTRIES:],
        }
        with open(self.state_file, "w", encoding="utf-8") as f:
            json.dump(data, f, indent=2)

    def load_state(self):
        if not self.state_file or not os.path.exists(self.state_file):
            return
        with open(self.state_file, "r", encoding="utf-8") as f:
            try:
                data = json.load(f)
            except ValueError:
                # An empty or invalid state file is treated as no state
                return
        collections = data.get("collections", {})
        if not isinstance(collections, dict):
            return
        with self._lock:
            self.collections = {
                name: {doc_id: doc for doc_id, doc in docs.items() if isinstance(doc, dict)}
                for name, docs in collections.items()
                if isinstance(docs, dict)
            }
        activity.logs.clear()
        activity.logs.extend(data.get("logs", []))

    def clear(self):
        """Drop every document (subscriptions stay attached)."""
        with self._lock:
            self.collections = {}

    # --- Reads ---
    def _docs(self, collection: str) -> Dict[str, dict]:
        return self.collections.setdefault(collection, {})

    def get_one(self, collection: str, doc_id: str) -> Optional[dict]:
        with self._lock:
            doc = self._docs(collection).get(doc_id)
            return _with_id(doc_id, doc) if doc is not None else None

    def list_all(self, collection: str) -> List[dict]:
        with self._lock:
            return [_with_id(doc_id, doc) for doc_id, doc in self._docs(collection).items()]

    # --- Subscriptions ---
    def subscribe(self, collection: str, order_field: str, direction: str,
                  on_snapshot: SnapshotHandler, on_error: Optional[ErrorHandler] = None) -> Subscription:
        if direction not in ("asc", "desc"):
            raise ValueError(f"direction must be 'asc' or 'desc', got {direction!r}")
        subscription = Subscription(self, collection, order_field, direction, on_snapshot, on_error)
        with self._lock:
            self._subscriptions.append(subscription)
            initial = [
                DocumentChange(type=ChangeType.ADDED, doc_id=doc_id, data=_with_id(doc_id, doc))
                for doc_id, doc in self._docs(collection).items()
            ]
            self._deliver(subscription, initial)
        return subscription

    def _detach(self, subscription: Subscription) -> None:
        with self._lock:
            if subscription in self._subscriptions:
                self._subscriptions.remove(subscription)

    def _build_snapshot(self, subscription: Subscription, changes: List[DocumentChange]) -> Snapshot:
        docs = [_with_id(doc_id, doc) for doc_id, doc in self._docs(subscription.collection).items()]
        field = subscription.order_field
        present = [d for d in docs if d.get(field) is not None]
        missing = [d for d in docs if d.get(field) is None]
        present.sort(key=lambda d: d[field], reverse=subscription.direction == "desc")
        return Snapshot(
            collection=subscription.collection,
            docs=copy.deepcopy(present + missing),
            changes=copy.deepcopy(changes),
        )

    def _deliver(self, subscription: Subscription, changes: List[DocumentChange]) -> None:
        if not subscription.active:
            return
        try:
            snapshot = self._build_snapshot(subscription, changes)
        except Exception as e:
            error = SubscriptionError(subscription.collection, str(e))
            activity.log_event(str(error))
            if subscription.on_error:
                subscription.on_error(error)
            return
        subscription.on_snapshot(snapshot)

    def _publish(self, collection: str, changes: List[DocumentChange]) -> None:
        if not changes:
            return
        for subscription in list(self._subscriptions):
            if subscription.collection == collection:
                self._deliver(subscription, changes)

    # --- Writes ---
    def write_one(self, collection: str, doc_id: str, patch: dict) -> None:
        with self._lock:
            docs = self._docs(collection)
            if doc_id not in docs:
                raise StoreWriteError(f"{collection}/{doc_id} does not exist")
            docs[doc_id].update(_strip_id(patch))
            self._persist()
            self._publish(collection, [
                DocumentChange(type=ChangeType.MODIFIED, doc_id=doc_id, data=_with_id(doc_id, docs[doc_id]))
            ])

    def update_one(self, collection: str, doc_id: str, updater: Updater) -> dict:
        with self._lock:
            docs = self._docs(collection)
            if doc_id not in docs:
                raise StoreWriteError(f"{collection}/{doc_id} does not exist")
            patch = updater(_with_id(doc_id, copy.deepcopy(docs[doc_id])))
            self.write_one(collection, doc_id, patch)
            return patch

    def create_one(self, collection: str, fields: dict, doc_id: Optional[str] = None) -> str:
        with self._lock:
            docs = self._docs(collection)
            doc_id = doc_id or uuid4().hex
            change_type = ChangeType.MODIFIED if doc_id in docs else ChangeType.ADDED
            docs[doc_id] = copy.deepcopy(_strip_id(fields))
            self._persist()
            self._publish(collection, [
                DocumentChange(type=change_type, doc_id=doc_id, data=_with_id(doc_id, docs[doc_id]))
            ])
            return doc_id

    def delete_one(self, collection: str, doc_id: str) -> None:
        with self._lock:
            docs = self._docs(collection)
            # deleting a missing document succeeds, so retried deletes are harmless
            if doc_id not in docs:
                return
            removed = docs.pop(doc_id)
            self._persist()
            self._publish(collection, [
                DocumentChange(type=ChangeType.REMOVED, doc_id=doc_id, data=_with_id(doc_id, removed))
            ])

    def write_batch(self, ops: List[BatchOp]) -> None:
        with self._lock:
            missing = [f"{c}/{i}" for c, i, _ in ops if i not in self._docs(c)]
            if missing:
                raise StoreWriteError(f"Batch rejected, missing documents: {', '.join(missing)}")
            changed: Dict[str, List[DocumentChange]] = {}
            for collection, doc_id, patch in ops:
                docs = self._docs(collection)
                docs[doc_id].update(_strip_id(patch))
                changed.setdefault(collection, []).append(
                    DocumentChange(type=ChangeType.MODIFIED, doc_id=doc_id, data=_with_id(doc_id, docs[doc_id]))
                )
            if ops:
                self._persist()
            for collection, changes in changed.items():
                self._publish(collection, changes)

    def upload_file(self, data: bytes, path_hint: str) -> str:
        file_extension = os.path.splitext(path_hint or "")[1]
        unique_filename = f"{uuid4()}{file_extension}"
        file_path = os.path.join(self.upload_dir, unique_filename)
        try:
            os.makedirs(self.upload_dir, exist_ok=True)
            with open(file_path, "wb") as buffer:
                buffer.write(data)
        except OSError as e:
            raise StoreWriteError(f"Upload failed: {e}") from e
        return f"{UPLOAD_URL_PREFIX}/{unique_filename}"

    def _persist(self):
        try:
            self.save_state()
        except OSError as e:
            raise StoreWriteError(f"Could not persist state: {e}") from e


def _with_id(doc_id: str, doc: dict) -> dict:
    data = dict(doc)
    data["id"] = doc_id
    return data


def _strip_id(fields: dict) -> dict:
    return {k: v for k, v in fields.items() if k != "id"}
