"""Phone form state and its pure update functions.

Every action returns a new FormState; nothing here talks to the network.
"""

from dataclasses import asdict, dataclass, replace

from .masking import PHONE_LENGTH, mask_phone_input
from .schemas import PhoneRecord


@dataclass(frozen=True)
class FormState:
    input_value: str = ""
    editing_id: str | None = None
    edit_value: str = ""
    error: str = ""
    loading: bool = False

    @property
    def is_editing(self) -> bool:
        return self.editing_id is not None

    def to_dict(self) -> dict:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: dict | None) -> "FormState":
        """Rebuild state carried across a redirect; `loading` never survives a request."""
        if not data:
            return cls()
        editing_id = data.get("editing_id")
        return cls(
            input_value=mask_phone_input(data.get("input_value")),
            editing_id=str(editing_id) if editing_id is not None else None,
            edit_value=mask_phone_input(data.get("edit_value")),
            error=str(data.get("error") or ""),
        )


def on_input_change(state: FormState, raw: str | None) -> FormState:
    return replace(state, input_value=mask_phone_input(raw), error="")


def on_edit_change(state: FormState, raw: str | None) -> FormState:
    return replace(state, edit_value=mask_phone_input(raw))


def start_edit(state: FormState, record: PhoneRecord) -> FormState:
    return replace(state, editing_id=record.id, edit_value=mask_phone_input(record.phone))


def cancel_edit(state: FormState) -> FormState:
    return replace(state, editing_id=None, edit_value="")


def set_error(state: FormState, message: str) -> FormState:
    return replace(state, error=message)


def set_loading(state: FormState, loading: bool) -> FormState:
    return replace(state, loading=loading)


def can_add(state: FormState) -> bool:
    return len(state.input_value) == PHONE_LENGTH and not state.loading


def can_save(state: FormState) -> bool:
    return state.is_editing and len(state.edit_value) == PHONE_LENGTH and not state.loading
