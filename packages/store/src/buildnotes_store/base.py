"""Abstract store interface.

The CLI depends on BaseStore, not on a concrete backend, so the JSON file
store and the SQLite store are interchangeable without touching CLI code.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from buildnotes_store.models import BuildRecord, StateRecord


class BaseStore(ABC):
    """Persistence for the last-processed pointer and the build history.

    Single-writer: concurrent runs against the same store are not guarded
    against and must be prevented by whatever schedules the runs.
    """

    @abstractmethod
    def load_state(self, repo: str) -> StateRecord | None:
        """Return the saved pointer for ``repo``, or None if there is none yet."""

    @abstractmethod
    def save_state(self, state: StateRecord) -> None:
        """Replace the saved pointer for ``state.repo``."""

    @abstractmethod
    def save_build(self, record: BuildRecord) -> None:
        """Persist a processed build. Saving the same slug again replaces it."""

    @abstractmethod
    def list_builds(self, repo: str) -> list[BuildRecord]:
        """Return build records for a repo, oldest build first.

        Returns an empty list if no builds exist; never raises.
        """

    def latest_build(self, repo: str) -> BuildRecord | None:
        builds = self.list_builds(repo)
        return builds[-1] if builds else None

    def close(self) -> None:
        """Release any resources held by the store.

        Default is a no-op so callers can always call close() safely.
        """
