"""Phone form controller: form state, list cache and sync operations.

Mutations go straight to the data service and, on success, the whole list is
fetched again, unless the caller redirects to a page that loads it anyway.
There is no optimistic update and no incremental patching of
the cache. Failures are recorded as a single message in the form state.
"""

import logging
from collections.abc import Awaitable, Callable
from dataclasses import replace

from pydantic import ValidationError

from ..config import settings
from ..integrations.data_service import DataServiceError, TableDataService
from .errors import PhoneFormError, PhoneValidationError, TransportError, classify_error
from .masking import is_complete_phone
from .schemas import PhoneRecord
from .state import (
    FormState,
    can_add,
    can_save,
    cancel_edit,
    on_edit_change,
    on_input_change,
    set_error,
    set_loading,
    start_edit,
)

logger = logging.getLogger(__name__)

TOKEN_REJECTED_STATUS = 401


class PhoneFormController:
    """Drives one phone form for one caller identity."""

    def __init__(
        self,
        service: TableDataService,
        state: FormState | None = None,
        *,
        table: str | None = None,
        anonymous_identity: bool | None = None,
    ) -> None:
        self.service = service
        self.state = state or FormState()
        self.table = table or settings.phone_table
        self.anonymous_identity = settings.anonymous_identity if anonymous_identity is None else anonymous_identity
        self.records: list[PhoneRecord] = []
        self.last_error: PhoneFormError | None = None
        self._list_generation = 0

    # --- Form actions (no requests) ---

    @property
    def can_add(self) -> bool:
        return can_add(self.state)

    @property
    def can_save(self) -> bool:
        return can_save(self.state)

    def input_changed(self, raw: str | None) -> None:
        self.state = on_input_change(self.state, raw)

    def edit_changed(self, raw: str | None) -> None:
        self.state = on_edit_change(self.state, raw)

    def find_record(self, record_id: str) -> PhoneRecord | None:
        return next((r for r in self.records if r.id == record_id), None)

    def begin_edit(self, record_id: str) -> bool:
        """Enter edit mode with the buffer pre-filled from the cached record."""
        record = self.find_record(record_id)
        if record is None:
            return False
        self.state = start_edit(self.state, record)
        return True

    def cancel_edit(self) -> None:
        self.state = cancel_edit(self.state)

    # --- Startup ---

    async def ensure_identity(self) -> bool:
        """Make sure requests go out under an identity.

        An expired session is renewed with its refresh token so the caller
        keeps the same user and sees the same rows. A new anonymous identity
        is issued only when there is no session or the renewal fails.
        """
        if self.service.get_session() is not None:
            return True
        stale = self.service.session
        if stale is not None and stale.refresh_token:
            try:
                await self.service.refresh_session()
                return True
            except DataServiceError as e:
                logger.warning("Session refresh failed for user_id=%s: %s", stale.user_id, e)
        if not self.anonymous_identity:
            return True
        try:
            await self.service.sign_in_anonymously()
        except DataServiceError as e:
            logger.warning("Anonymous sign-in failed: %s", e)
            self._fail(TransportError(str(e)))
            return False
        return True

    async def bootstrap(self) -> bool:
        """Establish an identity, then load the list. The list is never fetched without one."""
        if not await self.ensure_identity():
            return False
        return await self.refresh()

    # --- Sync operations ---

    async def refresh(self) -> bool:
        """Replace the cache with the service's list; failures are only logged."""
        self._list_generation += 1
        generation = self._list_generation
        try:
            rows = await self.service.list(self.table, "created_at", "desc")
            records = [PhoneRecord.model_validate(row) for row in rows]
        except DataServiceError as e:
            self._expire_rejected_session(e)
            logger.warning("Phone list refresh failed: %s", e)
            return False
        except ValidationError as e:
            logger.warning("Phone list refresh returned malformed rows: %s", e)
            return False

        if generation != self._list_generation:
            logger.debug("Discarding stale phone list (generation %d, latest %d)", generation, self._list_generation)
            return False
        self.records = records
        return True

    def _expire_rejected_session(self, exc: DataServiceError) -> None:
        # 401: the token was rejected; renew it on the next ensure_identity.
        if exc.status_code == TOKEN_REJECTED_STATUS:
            self.service.expire_session()

    def _fail(self, err: PhoneFormError) -> None:
        self.last_error = err
        self.state = set_error(self.state, err.user_message)

    async def _mutate(self, action: str, call: Callable[[], Awaitable[object]]) -> bool:
        self.state = set_loading(self.state, True)
        self.last_error = None
        try:
            await call()
        except DataServiceError as e:
            self._expire_rejected_session(e)
            err = classify_error(e)
            logger.info("Phone %s failed (%s): %s", action, type(err).__name__, e)
            self._fail(err)
            return False
        finally:
            self.state = set_loading(self.state, False)
        return True

    async def add(self, *, refresh: bool = True) -> bool:
        if self.state.loading:
            return False
        phone = self.state.input_value
        if not is_complete_phone(phone):
            self._fail(PhoneValidationError(phone))
            return False

        if not await self._mutate("insert", lambda: self.service.insert(self.table, {"phone": phone})):
            return False
        self.state = replace(self.state, input_value="", error="")
        if refresh:
            await self.refresh()
        return True

    async def save_edit(self, *, refresh: bool = True) -> bool:
        if self.state.loading or not self.state.is_editing:
            return False
        record_id, phone = self.state.editing_id, self.state.edit_value
        if not is_complete_phone(phone):
            self._fail(PhoneValidationError(phone))
            return False

        if not await self._mutate("update", lambda: self.service.update(self.table, record_id, {"phone": phone})):
            return False
        self.state = replace(cancel_edit(self.state), error="")
        if refresh:
            await self.refresh()
        return True

    async def delete(self, record_id: str, *, refresh: bool = True) -> bool:
        if self.state.loading:
            return False

        if not await self._mutate("delete", lambda: self.service.delete(self.table, record_id)):
            return False
        if self.state.editing_id == record_id:
            self.state = cancel_edit(self.state)
        self.state = replace(self.state, error="")
        if refresh:
            await self.refresh()
        return True
