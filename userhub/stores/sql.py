"""
SQLAlchemy-backed UserStore for the persisted realms (LOCAL and LDAP).

Rows are converted into record variants through the FactoryRegistry, so a
row with realm LDAP comes back as an LdapUser and a LOCAL row with role
SERVICE as a ServiceUser.

Transactions:
  The store flushes but never commits. The session owner (get_db() for
  requests) decides when to commit, so several store calls inside one
  request form a single transaction.

Failures:
  IntegrityError on insert/update becomes UniquenessViolationError; any
  other SQLAlchemyError becomes StorageUnavailableError. Nothing is
  retried here.
"""

from contextlib import contextmanager

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from userhub.exceptions import (
    StorageUnavailableError,
    UniquenessViolationError,
    UserNotFoundError,
)
from userhub.identity.credential import UNKNOWN_ALGORITHM, Credential
from userhub.identity.factories import FactoryRegistry
from userhub.identity.records import ProfileSettings, UserRecord
from userhub.identity.roles import Realm
from userhub.models.profile import ProfileSettingsRow
from userhub.models.user import UserRow
from userhub.stores.base import UserStore


@contextmanager
def storage_errors():
    """Translate driver/ORM failures into StorageUnavailableError."""
    try:
        yield
    except SQLAlchemyError as exc:
        raise StorageUnavailableError(f"User storage failed: {type(exc).__name__}") from exc


class SqlUserStore(UserStore):

    def __init__(self, session: Session, factories: FactoryRegistry):
        self.session = session
        self.factories = factories

    # --- conversion -------------------------------------------------------

    def _to_record(self, row: UserRow) -> UserRecord:
        credential = None
        if row.password_hash is not None:
            credential = Credential(row.password_hash, row.password_algorithm or UNKNOWN_ALGORITHM)
        record = self.factories.get_factory(row.realm).create(
            row.username, credential, row.role, row.is_active
        )
        record.id = row.id
        record.expiration_date = row.expiration_date
        if row.profile is not None:
            record.profile = ProfileSettings(
                email_address=row.profile.email_address,
                email_receive=row.profile.email_receive,
                payload=row.profile.payload,
            )
        return record

    @staticmethod
    def _apply(record: UserRecord, row: UserRow) -> None:
        row.username = record.username
        row.role = record.role
        row.is_active = record.active
        row.expiration_date = record.expiration_date
        credential = record.credential
        row.password_hash = credential.representation if credential else None
        row.password_algorithm = credential.algorithm if credential else None
        if row.profile is None:
            row.profile = ProfileSettingsRow()
        row.profile.email_address = record.profile.email_address
        row.profile.email_receive = record.profile.email_receive
        row.profile.payload = record.profile.payload

    # --- queries ----------------------------------------------------------

    def _row(self, username: str, realm: Realm) -> UserRow | None:
        result = self.session.execute(
            select(UserRow).where(UserRow.username == username, UserRow.realm == realm)
        )
        return result.scalar_one_or_none()

    def _rows(self, *criteria) -> list[UserRow]:
        result = self.session.execute(
            select(UserRow).where(*criteria).order_by(UserRow.id)
        )
        return list(result.scalars().all())

    def find_by_username_and_realm(self, username, realm):
        with storage_errors():
            row = self._row(username, realm)
        if row is None:
            raise UserNotFoundError(f"No user {username} in realm {realm.value}")
        return self._to_record(row)

    def find_all_by_username(self, username):
        # Oldest first, so "first match" is stable
        with storage_errors():
            rows = self._rows(UserRow.username == username)
        return [self._to_record(row) for row in rows]

    def find_by_id(self, user_id):
        with storage_errors():
            row = self.session.get(UserRow, user_id)
        if row is None:
            raise UserNotFoundError(f"No user with id {user_id}")
        return self._to_record(row)

    def find_all(self):
        with storage_errors():
            rows = self._rows()
        return [self._to_record(row) for row in rows]

    def find_all_in_realm(self, realm):
        with storage_errors():
            rows = self._rows(UserRow.realm == realm)
        return [self._to_record(row) for row in rows]

    def exists(self, record):
        with storage_errors():
            return self._row(record.username, record.realm) is not None

    # --- writes -----------------------------------------------------------

    def upsert(self, record):
        self.check_writable(record)
        with storage_errors():
            clash = self._row(record.username, record.realm)
            if record.id is None:
                if clash is not None:
                    raise UniquenessViolationError(record.username, record.realm.value)
                row = UserRow(realm=record.realm)
                self.session.add(row)
            else:
                row = self.session.get(UserRow, record.id)
                if row is None:
                    raise UserNotFoundError(f"No user with id {record.id}")
                if clash is not None and clash.id != row.id:
                    raise UniquenessViolationError(record.username, record.realm.value)
            self._apply(record, row)
            try:
                self.session.flush()
            except IntegrityError as exc:
                # Lost a race against a concurrent insert of the same key
                self.session.rollback()
                raise UniquenessViolationError(record.username, record.realm.value) from exc
        record.id = row.id

    def delete_by_username_and_realm(self, username, realm):
        with storage_errors():
            row = self._row(username, realm)
            if row is None:
                raise UserNotFoundError(f"No user {username} in realm {realm.value}")
            self.session.delete(row)
            self.session.flush()
