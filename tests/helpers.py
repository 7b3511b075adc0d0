"""
tests/helpers.py

Fakes for the auth gate and catalog loader, plus record builders.
"""

from typing import Callable, List, Optional

from core.auth import AuthFailure, AuthSession
from core.records import CATALOG_COLUMNS, Record


HEADER = ",".join(CATALOG_COLUMNS)


class FakeAuthGate:
    """In-memory stand-in for FirebaseAuthGate with the same observer contract."""

    def __init__(self, accounts: Optional[dict] = None):
        self.accounts = accounts or {"staff@iku.com": "secret", "admin@iku.com": "admin"}
        self.current_user: Optional[AuthSession] = None
        self.observers: List[Callable] = []

    def on_auth_state_changed(self, observer):
        self.observers.append(observer)
        observer(self.current_user)

        def unsubscribe():
            if observer in self.observers:
                self.observers.remove(observer)

        return unsubscribe

    def sign_in_with_email_and_password(self, email, password):
        if self.accounts.get(email) != password:
            raise AuthFailure()
        self.current_user = AuthSession(uid=f"uid-{email}", email=email, id_token="token")
        for observer in list(self.observers):
            observer(self.current_user)
        return self.current_user

    def sign_out(self):
        self.current_user = None
        for observer in list(self.observers):
            observer(None)


class StubLoader:
    """Returns queued results in order; an exception instance is raised instead."""

    def __init__(self, *results):
        self.results = list(results)
        self.calls: List[str] = []

    def __call__(self, source):
        self.calls.append(source)
        result = self.results.pop(0) if len(self.results) > 1 else self.results[0]
        if isinstance(result, Exception):
            raise result
        return [dict(r) for r in result]


def make_records(n: int, *, status: str = "Complete", staff: str = "") -> List[Record]:
    records = []
    for i in range(n):
        rec = {col: "" for col in CATALOG_COLUMNS}
        rec.update({"NO": str(i + 1), "CONTROL NUMBER": f"C{i + 1:05d}", "TITLE": f"Book {i + 1}", "STATUS": status, "STAFF": staff})
        records.append(rec)
    return records

