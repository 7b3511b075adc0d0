"""Session state and the single command reconciler for the catalog dashboard.

Every mutation of the session (ingestion, cell edits, page changes, clock
ticks) goes through :meth:`DashboardSession.dispatch`, one command at a time.
The collection store, auth gate, loader and edit sink are injected so the
aggregation and paging code stays pure.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Callable, List, Mapping, Optional, Protocol, Sequence, Union

from core.auth import AuthObserver, AuthSession
from core.data import IngestionError, load_catalog_records
from core.metrics_summary import CatalogSummary, compute_summary
from core.pagination import absolute_position, page_count, page_slice
from core.records import EDITABLE_FIELDS, Record, as_text, validate_edit
from core.settings import DashboardSettings
from core.store import CollectionStore, OutOfRange


logger = logging.getLogger(__name__)

Loader = Callable[[str], List[Record]]
Clock = Callable[[], datetime]


class AuthGate(Protocol):
    current_user: Optional[AuthSession]

    def on_auth_state_changed(self, observer: AuthObserver) -> Callable[[], None]: ...

    def sign_in_with_email_and_password(self, email: str, password: str) -> AuthSession: ...

    def sign_out(self) -> None: ...


class EditSink(Protocol):
    def record_edit(self, position: int, field: str, value: str) -> None: ...


class NullEditSink:
    """Edits live only in the session copy; nothing is written back."""

    def record_edit(self, position: int, field: str, value: str) -> None:
        logger.debug("Edit kept in session only: position=%s field=%s", position, field)


@dataclass(frozen=True)
class Refresh:
    pass


@dataclass(frozen=True)
class EditField:
    row: int
    field: str
    value: str


@dataclass(frozen=True)
class ChangePage:
    page: int


@dataclass(frozen=True)
class Tick:
    pass


Command = Union[Refresh, EditField, ChangePage, Tick]


def page_edits(before: Sequence[Mapping[str, object]], after: Sequence[Mapping[str, object]]) -> List[EditField]:
    """Diff the rows shown in the grid against what came back from it.

    Only editable fields are compared; a cleared cell (``None``/NaN) is an empty
    string.
    """
    edits: List[EditField] = []
    for row, (old, new) in enumerate(zip(before, after)):
        for name in EDITABLE_FIELDS:
            old_value = as_text(old.get(name))
            new_value = as_text(new.get(name))
            if new_value != old_value:
                edits.append(EditField(row=row, field=name, value=new_value))
    return edits


class DashboardSession:
    def __init__(
        self,
        store: CollectionStore,
        auth_gate: AuthGate,
        loader: Loader = load_catalog_records,
        *,
        settings: Optional[DashboardSettings] = None,
        edit_sink: Optional[EditSink] = None,
        clock: Clock = datetime.now,
    ):
        self.store = store
        self.auth_gate = auth_gate
        self.loader = loader
        self.settings = settings or DashboardSettings()
        self.edit_sink = edit_sink or NullEditSink()
        self.clock = clock

        self.user: Optional[AuthSession] = None
        self.loading = True
        self.page = 1
        self.current_time: Optional[datetime] = None
        self.last_error: Optional[str] = None
        self.last_loaded_at: Optional[datetime] = None
        self._unsubscribe: Optional[Callable[[], None]] = None
        self._clock_running = False

    # ---- lifecycle ----
    def start(self) -> None:
        if self._unsubscribe is None:
            self._unsubscribe = self.auth_gate.on_auth_state_changed(self._on_auth_state)
        self._clock_running = True
        self.current_time = self.clock()

    def stop(self) -> None:
        if self._unsubscribe is not None:
            self._unsubscribe()
            self._unsubscribe = None
        self._clock_running = False

    @property
    def started(self) -> bool:
        return self._unsubscribe is not None

    def _on_auth_state(self, user: Optional[AuthSession]) -> None:
        self.user = user
        if user is not None:
            self.dispatch(Refresh())
        else:
            self.store.replace([])
            self.page = 1
        self.loading = False

    def sign_in(self, email: str, password: str) -> AuthSession:
        return self.auth_gate.sign_in_with_email_and_password(email, password)

    def sign_out(self) -> None:
        self.auth_gate.sign_out()

    @property
    def is_admin(self) -> bool:
        return self.user is not None and self.user.email == self.settings.admin_email

    # ---- derived view ----
    @property
    def page_size(self) -> int:
        return self.settings.page_size

    @property
    def page_count(self) -> int:
        return page_count(len(self.store), self.page_size)

    @property
    def has_previous(self) -> bool:
        return self.page > 1

    @property
    def has_next(self) -> bool:
        return self.page < self.page_count

    def summary(self) -> CatalogSummary:
        return compute_summary(self.store.snapshot())

    def visible_records(self) -> List[Record]:
        return page_slice(self.store.snapshot(), self.page, self.page_size)

    # ---- commands ----
    def dispatch(self, command: Command) -> bool:
        """Apply one command. Returns False when the command is rejected."""
        if isinstance(command, Refresh):
            return self._refresh()
        if isinstance(command, EditField):
            self._edit(command)
            return True
        if isinstance(command, ChangePage):
            return self._change_page(command.page)
        if isinstance(command, Tick):
            if self._clock_running:
                self.current_time = self.clock()
            return self._clock_running
        raise TypeError(f"Unknown command {command!r}")

    def _refresh(self) -> bool:
        try:
            records = self.loader(self.settings.csv_url)
        except IngestionError as exc:
            self.last_error = str(exc)
            logger.warning("Catalog refresh failed; keeping %d stale records: %s", len(self.store), exc)
            return False
        self.store.replace(records)
        self.page = min(max(1, self.page), self.page_count)
        self.last_error = None
        self.last_loaded_at = self.clock()
        return True

    def _edit(self, command: EditField) -> None:
        validate_edit(command.field, command.value)
        if not 0 <= command.row < self.page_size:
            raise OutOfRange(f"row {command.row} outside a page of {self.page_size}")
        # Page and size as of commit time, not when the editor opened.
        position = absolute_position(self.page, self.page_size, command.row)
        self.store.set_field(position, command.field, command.value)
        self.edit_sink.record_edit(position, command.field, command.value)

    def _change_page(self, page: int) -> bool:
        if not 1 <= page <= self.page_count:
            logger.debug("Rejected page %s (valid 1..%s)", page, self.page_count)
            return False
        self.page = page
        return True
