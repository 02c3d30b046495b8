"""
Editing a profile form backed by a nested record tree.

Shows the round trip a form editor goes through: load from the server, bind
listeners to nested nodes, edit, surface nested validation errors next to the
fields that caused them, save, and discard unsaved edits with reset().

Run with ``python examples/profile_form.py``.
"""

import logging

from recordstate import (
    SOME_CHANGE, Collection, InMemoryTransport, NestedRecord, set_default_transport,
)

logger = logging.getLogger(__name__)


class PhoneNumber(NestedRecord):
    """A phone number row in the form."""
    defaults = {"label": "mobile", "number": ""}

    def validate(self, attributes):
        number = attributes.get("number", "")
        if number and not number.replace(" ", "").lstrip("+").isdigit():
            return {"number": ["Only digits, spaces and a leading + are allowed."]}
        return None


class PhoneNumbers(Collection):
    record_class = PhoneNumber


class Preferences(NestedRecord):
    defaults = {"newsletter": False, "language": "en"}


class ContactProfile(NestedRecord):
    """Root record of the form."""
    nested = {
        "preferences": Preferences,
        "phones": PhoneNumbers,
    }
    defaults = {"display_name": ""}

    def validate(self, attributes):
        errors = {}
        if not attributes.get("display_name"):
            errors["display_name"] = ["Display name is required."]
        return self.merge_in_nested_errors(errors) or None


def main():
    logging.basicConfig(level=logging.INFO)
    transport = InMemoryTransport()
    set_default_transport(transport)

    profile = ContactProfile({
        "display_name": "Ada",
        "preferences": {"language": "en"},
        "phones": [{"label": "home", "number": "+47 22 00 00 00"}],
    })
    profile.save()
    logger.info(f"Saved profile id={profile.id}: {transport.stored('contactprofile', profile.id)}")

    # Widgets bound to nested nodes keep working across assignments
    preferences = profile.get("preferences")
    preferences.on("change:language", lambda record, value: logger.info(f"Language widget -> {value}"))
    profile.on(SOME_CHANGE, lambda record, info: logger.info(f"Form dirty: {sorted(info['set_attrs'])}"))

    profile.set({"preferences": {"language": "fr"}})
    assert profile.get("preferences") is preferences

    # A bad phone number is reported on the row that holds it
    phone = profile.get("phones")[0]
    phone.set("number", "call me")
    if not profile.is_valid():
        logger.info(f"Errors by path: {profile.validation_error}")
        logger.info(f"Errors on the phone row: {phone.validation_error}")

    # Discard everything since the last successful save
    profile.reset()
    logger.info(f"After reset: {profile.to_json()}")


if __name__ == "__main__":
    main()
