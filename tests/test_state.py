"""Tests for phone form state transitions."""

from phonebook.phones.schemas import PhoneRecord
from phonebook.phones.state import (
    FormState,
    can_add,
    can_save,
    cancel_edit,
    on_edit_change,
    on_input_change,
    set_loading,
    start_edit,
)


class TestInputChange:
    def test_masks_and_disables_add(self):
        state = on_input_change(FormState(), "12a3-45")
        assert state.input_value == "12345"
        assert not can_add(state)

    def test_truncates_and_enables_add(self):
        state = on_input_change(FormState(), "12345678901234")
        assert state.input_value == "1234567890"
        assert can_add(state)

    def test_clears_error(self):
        state = on_input_change(FormState(error="This phone number is already registered."), "1")
        assert state.error == ""

    def test_add_disabled_while_loading(self):
        state = set_loading(on_input_change(FormState(), "1234567890"), True)
        assert not can_add(state)


class TestEditing:
    record = PhoneRecord(id="7", phone="5551234567")

    def test_start_edit_prefills_buffer(self):
        state = start_edit(FormState(), self.record)
        assert state.editing_id == "7"
        assert state.edit_value == "5551234567"
        assert state.is_editing
        assert can_save(state)

    def test_edit_change_masks(self):
        state = on_edit_change(start_edit(FormState(), self.record), "555-12")
        assert state.edit_value == "55512"
        assert not can_save(state)

    def test_cancel_leaves_editing(self):
        state = cancel_edit(start_edit(FormState(input_value="123"), self.record))
        assert not state.is_editing
        assert state.edit_value == ""
        assert state.input_value == "123"

    def test_save_disabled_while_loading(self):
        state = set_loading(start_edit(FormState(), self.record), True)
        assert not can_save(state)


class TestSerialization:
    def test_round_trip_drops_loading(self):
        state = FormState(input_value="123", editing_id="4", edit_value="5551234567", error="x", loading=True)
        restored = FormState.from_dict(state.to_dict())
        assert restored == FormState(input_value="123", editing_id="4", edit_value="5551234567", error="x")

    def test_from_dict_masks_tampered_values(self):
        restored = FormState.from_dict({"input_value": "12ab34567890999", "edit_value": "x"})
        assert restored.input_value == "1234567890"
        assert restored.edit_value == ""

    def test_from_empty(self):
        assert FormState.from_dict(None) == FormState()
