"""
Instance store interface and in-memory implementation.

The workflow service runs every transition inside ``store.transaction()``
and persists the instance with ``save_instance(instance, expected_version)``,
a compare-and-swap on ``FormInstance.version``. Together they make each
lock / complete / void / unlock a single atomic read-modify-write.
"""

from __future__ import annotations

import copy
import logging
import threading
from collections.abc import Iterator
from contextlib import AbstractContextManager, contextmanager
from typing import Protocol

from formwright.core import ir
from formwright.core.errors import FormwrightError

logger = logging.getLogger(__name__)


class ConcurrentModificationError(FormwrightError):
    """Raised when an instance changed between being read and being saved."""

    def __init__(self, instance_id: str, expected_version: int, actual_version: int | None):
        self.instance_id = instance_id
        self.expected_version = expected_version
        self.actual_version = actual_version
        super().__init__(
            f"Form instance {instance_id} was modified concurrently "
            f"(expected version {expected_version}, found {actual_version})"
        )


class InstanceStore(Protocol):
    """Persistence operations needed by the signing workflow."""

    def transaction(self) -> AbstractContextManager[None]:
        """Serialised unit of work; rolled back when the block raises."""
        ...

    # Instances
    def insert_instance(self, instance: ir.FormInstance) -> ir.FormInstance: ...

    def get_instance(self, instance_id: str) -> ir.FormInstance | None: ...

    def save_instance(self, instance: ir.FormInstance, expected_version: int) -> ir.FormInstance:
        """Persist ``instance`` if the stored version still equals ``expected_version``."""
        ...

    # Signatories
    def insert_signatory(self, signatory: ir.Signatory) -> ir.Signatory: ...

    def get_signatory(self, signatory_id: str) -> ir.Signatory | None: ...

    def list_signatories(self, instance_id: str) -> list[ir.Signatory]: ...

    def save_signatory(self, signatory: ir.Signatory) -> ir.Signatory: ...

    # Access links
    def insert_link(self, link: ir.AccessLink) -> ir.AccessLink: ...

    def get_link(self, link_id: str) -> ir.AccessLink | None: ...

    def get_link_by_token(self, token: str) -> ir.AccessLink | None: ...

    def save_link(self, link: ir.AccessLink) -> ir.AccessLink: ...


class InMemoryStore:
    """
    Dict-backed store for tests and single-process use.

    A re-entrant lock serialises transactions; a transaction that raises
    restores the snapshot taken when it started.
    """

    def __init__(self) -> None:
        self._instances: dict[str, ir.FormInstance] = {}
        self._signatories: dict[str, ir.Signatory] = {}
        self._links: dict[str, ir.AccessLink] = {}
        self._lock = threading.RLock()

    @contextmanager
    def transaction(self) -> Iterator[None]:
        with self._lock:
            snapshot = (
                copy.copy(self._instances),
                copy.copy(self._signatories),
                copy.copy(self._links),
            )
            try:
                yield
            except Exception:
                self._instances, self._signatories, self._links = snapshot
                raise

    # -- instances -------------------------------------------------------------

    def insert_instance(self, instance: ir.FormInstance) -> ir.FormInstance:
        with self._lock:
            if instance.id in self._instances:
                raise FormwrightError(f"Form instance {instance.id} already exists")
            self._instances[instance.id] = instance
            return instance

    def get_instance(self, instance_id: str) -> ir.FormInstance | None:
        return self._instances.get(instance_id)

    def save_instance(self, instance: ir.FormInstance, expected_version: int) -> ir.FormInstance:
        with self._lock:
            current = self._instances.get(instance.id)
            actual = current.version if current is not None else None
            if actual != expected_version:
                raise ConcurrentModificationError(instance.id, expected_version, actual)
            saved = instance.model_copy(update={"version": expected_version + 1})
            self._instances[instance.id] = saved
            return saved

    # -- signatories -----------------------------------------------------------

    def insert_signatory(self, signatory: ir.Signatory) -> ir.Signatory:
        with self._lock:
            self._signatories[signatory.id] = signatory
            return signatory

    def get_signatory(self, signatory_id: str) -> ir.Signatory | None:
        return self._signatories.get(signatory_id)

    def list_signatories(self, instance_id: str) -> list[ir.Signatory]:
        with self._lock:
            return [s for s in self._signatories.values() if s.form_instance_id == instance_id]

    def save_signatory(self, signatory: ir.Signatory) -> ir.Signatory:
        with self._lock:
            self._signatories[signatory.id] = signatory
            return signatory

    # -- links -----------------------------------------------------------------

    def insert_link(self, link: ir.AccessLink) -> ir.AccessLink:
        with self._lock:
            self._links[link.id] = link
            return link

    def get_link(self, link_id: str) -> ir.AccessLink | None:
        return self._links.get(link_id)

    def get_link_by_token(self, token: str) -> ir.AccessLink | None:
        with self._lock:
            for link in self._links.values():
                if link.token == token:
                    return link
        return None

    def save_link(self, link: ir.AccessLink) -> ir.AccessLink:
        with self._lock:
            self._links[link.id] = link
            return link
