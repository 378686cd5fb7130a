"""
test_contacts.py — Contact book capacity/validation and owner profiles.

Run with:
    pytest tests/test_contacts.py -v
"""

from __future__ import annotations

import asyncio

import pytest

from backend.app.core.errors import CapacityExceeded, NotFoundError, ValidationError
from backend.app.core.store import InMemoryStore
from backend.app.sos.contacts import ContactBook
from backend.app.sos.profiles import ProfileStore, default_display_name


def run(coro):
    return asyncio.run(coro)


class TestContactBook:

    def test_add_and_list_in_order(self):
        async def scenario():
            book = ContactBook(InMemoryStore())
            await book.add("o1", "Mom", "+27821112222")
            await book.add("o1", "Dad", "+27833334444")
            return await book.list("o1")
        contacts = run(scenario())
        assert [c.name for c in contacts] == ["Mom", "Dad"]
        assert all(c.id.startswith("local-") for c in contacts)
        assert contacts[0].id != contacts[1].id

    def test_sixth_contact_rejected(self):
        async def scenario():
            book = ContactBook(InMemoryStore())
            for i in range(5):
                await book.add("o1", f"C{i}", f"+2782000000{i}")
            with pytest.raises(CapacityExceeded) as exc_info:
                await book.add("o1", "C5", "+27820000005")
            return exc_info.value, await book.list("o1")
        error, contacts = run(scenario())
        assert error.status_code == 409
        assert error.details["limit"] == 5
        assert len(contacts) == 5

    def test_capacity_is_per_owner(self):
        async def scenario():
            book = ContactBook(InMemoryStore())
            for i in range(5):
                await book.add("o1", f"C{i}", "+27820000000")
            await book.add("o2", "Other", "+27820000000")
            return await book.list("o2")
        assert len(run(scenario())) == 1

    def test_input_is_trimmed(self):
        contact = run(ContactBook(InMemoryStore()).add("o1", "  Mom ", " +27 82 111 2222 "))
        assert contact.name == "Mom"
        assert contact.phone == "+27 82 111 2222"

    @pytest.mark.parametrize("name,phone,field", [
        ("", "+27821112222", "name"),
        ("   ", "+27821112222", "name"),
        ("Mom", "", "phone"),
        ("Mom", "call me", "phone"),
    ])
    def test_validation(self, name, phone, field):
        with pytest.raises(ValidationError) as exc_info:
            run(ContactBook(InMemoryStore()).add("o1", name, phone))
        assert exc_info.value.details["field"] == field

    def test_remove(self):
        async def scenario():
            book = ContactBook(InMemoryStore())
            mom = await book.add("o1", "Mom", "+27821112222")
            await book.add("o1", "Dad", "+27833334444")
            await book.remove("o1", mom.id)
            return await book.list("o1")
        assert [c.name for c in run(scenario())] == ["Dad"]

    def test_remove_frees_a_slot(self):
        async def scenario():
            book = ContactBook(InMemoryStore())
            added = [await book.add("o1", f"C{i}", "+27820000000") for i in range(5)]
            await book.remove("o1", added[0].id)
            await book.add("o1", "New", "+27820000000")
            return await book.list("o1")
        assert len(run(scenario())) == 5

    def test_remove_missing(self):
        with pytest.raises(NotFoundError):
            run(ContactBook(InMemoryStore()).remove("o1", "local-nope"))


class TestProfiles:

    @pytest.mark.parametrize("email,expected", [
        ("thandi@example.com", "thandi"),
        ("a.b+c@x.org", "a.b+c"),
        (None, "User"),
        ("", "User"),
        ("@example.com", "User"),
    ])
    def test_default_display_name(self, email, expected):
        assert default_display_name(email) == expected

    def test_ensure_creates_once(self):
        async def scenario():
            profiles = ProfileStore(InMemoryStore())
            first = await profiles.ensure("o1", "thandi@example.com")
            second = await profiles.ensure("o1", "other@example.com")
            return first, second
        first, second = run(scenario())
        assert first.full_name == "thandi"
        assert second.full_name == "thandi"

    def test_update(self):
        async def scenario():
            profiles = ProfileStore(InMemoryStore())
            await profiles.ensure("o1", "thandi@example.com")
            await profiles.update("o1", full_name=" Thandi M ", phone_number="+27821112222")
            return await profiles.get("o1")
        profile = run(scenario())
        assert profile.full_name == "Thandi M"
        assert profile.phone_number == "+27821112222"

    def test_update_rejects_blank_name(self):
        async def scenario():
            profiles = ProfileStore(InMemoryStore())
            await profiles.ensure("o1")
            await profiles.update("o1", full_name="  ")
        with pytest.raises(ValidationError):
            run(scenario())

    def test_update_missing(self):
        with pytest.raises(NotFoundError):
            run(ProfileStore(InMemoryStore()).update("nobody", full_name="X"))
