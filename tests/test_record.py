"""Tests for the Record primitive."""
import pytest

from recordstate import Collection, Record


class Note(Record):
    defaults = {"title": "", "tags": []}

    def validate(self, attributes):
        if len(attributes.get("title", "")) > 10:
            return {"title": ["Too long."]}
        return None


class Envelope(Record):
    def parse(self, data):
        return data["note"]


class TestAttributes:
    """get/set/unset/clear."""

    def test_defaults_applied_under_attributes(self):
        note = Note({"title": "Hi"})

        assert note.attributes == {"title": "Hi", "tags": []}

    def test_defaults_not_shared(self):
        first, second = Note(), Note()
        first.get("tags").append("x")

        assert second.get("tags") == []

    def test_callable_defaults(self):
        class Stamped(Record):
            def defaults(self):
                return {"count": 0}

        assert Stamped().get("count") == 0

    def test_key_value_and_mapping_forms(self):
        note = Note()

        note.set("title", "A")
        note.set({"body": "B"})

        assert note.get("title") == "A"
        assert note.get("body") == "B"

    def test_get_default(self):
        assert Note().get("missing", 5) == 5

    def test_has(self):
        note = Note({"body": None})

        assert note.has("title")
        assert not note.has("body")

    def test_unset_and_clear(self):
        note = Note({"body": "B"})

        note.unset("body")
        assert "body" not in note.attributes

        note.clear()
        assert note.attributes == {}

    def test_parse_on_construction(self):
        envelope = Envelope({"note": {"title": "Hi"}}, parse=True)

        assert envelope.attributes == {"title": "Hi"}

    def test_changed_tracks_last_set(self):
        note = Note()

        note.set({"title": "A", "tags": []})

        assert note.changed == {"title": "A"}


class TestEvents:
    """Per-attribute change events."""

    def test_change_events(self):
        note = Note()
        seen = []
        note.on("change:title", lambda record, value: seen.append(("title", value)))
        note.on("change", lambda record: seen.append("change"))

        note.set({"title": "A", "tags": []})

        assert seen == [("title", "A"), "change"]

    def test_no_events_without_change(self):
        note = Note({"title": "A"})
        seen = []
        note.on("change", lambda record: seen.append(record))

        note.set("title", "A")

        assert seen == []

    def test_silent(self):
        note = Note()
        seen = []
        note.on("change", lambda record: seen.append(record))

        note.set("title", "A", silent=True)

        assert seen == []
        assert note.get("title") == "A"

    def test_unset_fires_change(self):
        note = Note()
        seen = []
        note.on("change:title", lambda record, value: seen.append(value))

        note.unset("title")

        assert seen == [None]


class TestValidation:
    """validate hook, is_valid and validate=True."""

    def test_is_valid_records_outcome(self):
        note = Note({"title": "A very long title"})

        assert not note.is_valid()
        assert note.validation_error == {"title": ["Too long."]}

        note.set("title", "Short")
        assert note.is_valid()
        assert note.validation_error is None

    def test_set_with_validate_rejects(self):
        note = Note({"title": "A"})
        invalid = []
        note.on("invalid", lambda record, errors: invalid.append(errors))

        assert note.set("title", "A very long title", validate=True) is False

        assert note.get("title") == "A"
        assert invalid == [{"title": ["Too long."]}]


class TestIdentity:
    """cid and id."""

    def test_cid_unique(self):
        assert len({Note().cid for _ in range(50)}) == 50

    def test_cid_read_only(self):
        note = Note()
        with pytest.raises(AttributeError):
            note.cid = "other"

    def test_id_and_is_new(self):
        note = Note()
        assert note.is_new()

        note.set("id", 3)
        assert note.id == 3
        assert not note.is_new()

    def test_custom_id_attribute(self):
        class Keyed(Record):
            id_attribute = "key"

        assert Keyed({"key": "k1"}).id == "k1"

    def test_clone(self):
        note = Note({"title": "A", "tags": ["x"]})

        clone = note.clone()

        assert clone.attributes == note.attributes
        assert clone.cid != note.cid
        assert clone.get("tags") is not note.get("tags")


class TestPersistence:
    """save/fetch/destroy through a transport."""

    def test_save_assigns_id(self, transport):
        note = Note({"title": "A"})
        synced = []
        note.on("sync", lambda record, response: synced.append(response))

        note.save()

        assert note.id == 1
        assert synced == [{"title": "A", "tags": [], "id": 1}]

    def test_save_invalid(self, transport):
        note = Note()

        assert note.save({"title": "A very long title"}) is False
        assert transport.requests == []

    def test_save_wait_applies_after_confirmation(self, deferred_transport):
        note = Note({"title": "A"})

        note.save({"title": "B"}, wait=True)
        assert note.get("title") == "A"

        deferred_transport.flush()
        assert note.get("title") == "B"

    def test_fetch(self, transport):
        note = Note({"title": "A"})
        note.save()
        note.set("title", "Local")

        note.fetch()

        assert note.get("title") == "A"

    def test_destroy_removes_from_collection(self, transport):
        class Notes(Collection):
            record_class = Note

        notes = Notes([{"title": "A"}])
        note = notes[0]
        note.save()

        note.destroy()

        assert len(notes) == 0
        assert transport.stored("note", 1) is None

    def test_destroy_new_record(self):
        note = Note()
        destroyed = []
        note.on("destroy", lambda record: destroyed.append(record))

        assert note.destroy() is None
        assert destroyed == [note]

    def test_record_transport_preferred(self, transport):
        from recordstate import InMemoryTransport

        own = InMemoryTransport()

        class Routed(Record):
            pass

        Routed.transport = own
        Routed({"a": 1}).save()

        assert len(own.requests) == 1
        assert transport.requests == []

    def test_request_event(self, transport):
        note = Note()
        requests = []
        note.on("request", lambda record, future, options: requests.append(options))

        note.save()

        assert requests[0]["attrs"] == {"title": "", "tags": []}
