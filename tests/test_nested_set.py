"""Tests for assigning plain data and instances to nested attributes."""
import pytest

from recordstate import NestedRecord, NestedSchemaError

from fixture_models import Address, AddressBook, Profile, Settings


class TestNestedRecordMerge:
    """Plain data assigned to a nested record key."""

    def test_identity_preserved(self, profile):
        """Existing nested record is updated in place, not replaced."""
        settings = profile.get("settings")

        profile.set({"settings": {"locale": "fr"}})

        assert profile.get("settings") is settings
        assert settings.get("locale") == "fr"

    def test_merge_keeps_prior_state(self, profile):
        """Keys absent from the payload keep their previous values."""
        profile.set({"settings": {"locale": "fr"}})

        assert profile.get("settings").get("notifications") is False

    def test_repeated_assignment_keeps_identity(self, profile):
        """Identity survives any number of assignments."""
        settings = profile.get("settings")
        for locale in ("fr", "de", "en"):
            profile.set("settings", {"locale": locale})
            assert profile.get("settings") is settings
        assert settings.get("locale") == "en"

    def test_payload_goes_through_nested_parse(self, profile):
        """The nested record's parse() normalizes API-shaped payloads."""
        profile.set({"settings": {"data": {"locale": "de"}}})

        assert profile.get("settings").get("locale") == "de"
        assert not profile.get("settings").has("data")

    def test_listeners_survive_merge(self, profile):
        """Listeners bound to the nested record keep firing."""
        seen = []
        profile.get("settings").on("change:locale", lambda record, value: seen.append(value))

        profile.set({"settings": {"locale": "fr"}})
        profile.set({"settings": {"locale": "de"}})

        assert seen == ["fr", "de"]

    def test_rejected_validated_set_keeps_nested_merge(self, profile):
        """Nested data is merged before validation and stays merged when it fails."""
        seen = []
        profile.on("someChange", lambda record, meta: seen.append(meta))

        ok = profile.set({"name": "", "settings": {"locale": "fr"}}, validate=True)

        assert ok is False
        assert profile.get("name") == "Ada"
        assert profile.get("settings").get("locale") == "fr"
        assert len(seen) == 1


class TestNestedRecordConstruction:
    """Nested keys with no existing instance."""

    def test_builds_declared_type(self):
        """A fresh instance of the declared type is created."""
        profile = Profile()
        assert profile.get("settings") is None

        profile.set({"settings": {"locale": "fr"}})

        settings = profile.get("settings")
        assert isinstance(settings, Settings)
        assert settings.get("locale") == "fr"
        assert settings.get("notifications") is True  # declared default

    def test_fresh_instance_is_parsed(self):
        """Construction data goes through the declared type's parse()."""
        profile = Profile({"settings": {"data": {"locale": "fr"}}})

        assert profile.get("settings").get("locale") == "fr"

    def test_fresh_expansion_matches_payload(self):
        """The new instance's expansion equals the parsed payload over its defaults."""
        profile = Profile({"settings": {"locale": "de", "notifications": False}})
        settings = profile.get("settings")

        assert settings.to_json() == {"notifications": False, "locale": "de", "cid": settings.cid}

    def test_collection_members_built_from_list(self, profile):
        """List data builds the declared collection and its members."""
        book = profile.get("addresses")

        assert isinstance(book, AddressBook)
        assert len(book) == 2
        assert all(isinstance(member, Address) for member in book)
        assert all(member.collection is book for member in book)

    def test_none_passes_through(self, profile):
        """None is stored as is; the next payload builds a new instance."""
        settings = profile.get("settings")

        profile.set({"settings": None})
        assert profile.get("settings") is None

        profile.set({"settings": {"locale": "fr"}})
        assert isinstance(profile.get("settings"), Settings)
        assert profile.get("settings") is not settings


class TestNestedInstances:
    """Assigning record/collection instances."""

    def test_declared_instance_is_adopted(self, profile):
        """An instance of the declared type replaces the current one."""
        replacement = Settings({"locale": "de"})

        profile.set("settings", replacement)

        assert profile.get("settings") is replacement

    def test_other_record_type_is_treated_as_data(self, profile):
        """A record of another type is merged as plain data."""
        settings = profile.get("settings")

        profile.set("settings", Address({"city": "Oslo"}))

        assert profile.get("settings") is settings
        assert settings.get("city") == "Oslo"
        assert settings.get("cid") is None

    def test_declared_collection_is_adopted(self, profile):
        """An AddressBook instance replaces the current collection."""
        book = AddressBook([{"city": "Paris"}])

        profile.set("addresses", book)

        assert profile.get("addresses") is book


class TestNestedCollectionMerge:
    """Plain data assigned to a nested collection key."""

    def test_collection_identity_preserved(self, profile):
        """The collection instance is kept."""
        book = profile.get("addresses")

        profile.set({"addresses": [{"city": "Trondheim"}]})

        assert profile.get("addresses") is book

    def test_members_matched_by_client_id(self, profile):
        """Serialized members (which carry their cid) update the same members."""
        book = profile.get("addresses")
        first, second = book.records
        data = book.to_json()
        data[0]["city"] = "Trondheim"

        profile.set({"addresses": data})

        assert book.records == [first, second]
        assert first.get("city") == "Trondheim"

    def test_members_matched_by_id(self):
        """Members with persistent ids are merged by id."""
        profile = Profile({"addresses": [{"id": 7, "city": "Oslo"}]})
        member = profile.get("addresses")[0]

        profile.set({"addresses": [{"id": 7, "city": "Bergen"}]})

        assert profile.get("addresses")[0] is member
        assert member.get("city") == "Bergen"

    def test_unmatched_members_replaced(self, profile):
        """Data without ids or cids replaces the membership."""
        book = profile.get("addresses")
        old = book.records

        profile.set({"addresses": [{"city": "Paris"}]})

        assert len(book) == 1
        assert book[0] not in old
        assert book[0].get("city") == "Paris"

    def test_empty_collection_still_merged_into(self):
        """An empty nested collection counts as an existing instance."""
        profile = Profile({"addresses": []})
        book = profile.get("addresses")
        assert isinstance(book, AddressBook)
        assert len(book) == 0

        profile.set({"addresses": [{"city": "Oslo"}]})

        assert profile.get("addresses") is book
        assert len(book) == 1


class TestPassThrough:
    """Keys outside the nested schema."""

    def test_plain_keys_assigned(self, profile):
        profile.set({"name": "Grace", "age": 36})

        assert profile.get("name") == "Grace"
        assert profile.get("age") == 36

    def test_unset_plain_key(self, profile):
        profile.unset("name")

        assert not profile.has("name")

    def test_client_id_field_not_stored(self, profile):
        """The reserved client id key in a payload is ignored."""
        profile.set({"cid": "c-from-elsewhere", "name": "Grace"})

        assert "cid" not in profile.attributes
        assert profile.to_json()["cid"] == profile.cid


class TestNestedSchemaDeclaration:
    """How record types declare nested attributes."""

    def test_schema_from_method(self):
        """``nested`` may be a method computed from instance state."""
        class Dynamic(NestedRecord):
            settings_class = Settings

            def nested(self):
                return {"child": self.settings_class}

        record = Dynamic({"child": {"locale": "fr"}})

        assert isinstance(record.get("child"), Settings)
        assert record.nested_schema["child"].is_record

    def test_schema_resolved_once(self):
        """The schema is cached per instance."""
        calls = []

        class Counted(NestedRecord):
            def nested(self):
                calls.append(1)
                return {"child": Settings}

        record = Counted({"child": {}})
        record.set({"child": {"locale": "de"}})
        record.to_json()

        assert record.nested_schema is record.nested_schema
        assert len(calls) == 1

    def test_schema_kinds(self):
        """Entries are classified when the schema is built."""
        schema = Profile().nested_schema

        assert schema["settings"].is_record
        assert schema["addresses"].is_collection
        assert schema.keys() == ("settings", "addresses")

    def test_invalid_factory_rejected(self):
        """Non-record, non-collection factories raise NestedSchemaError."""
        class Broken(NestedRecord):
            nested = {"child": dict}

        with pytest.raises(NestedSchemaError):
            Broken()

    def test_no_schema(self):
        """A record without ``nested`` behaves like a plain record."""
        record = Address({"city": "Oslo"})

        assert len(record.nested_schema) == 0
        assert record.get("city") == "Oslo"
