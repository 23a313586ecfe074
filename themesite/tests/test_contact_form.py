import pytest

from themesite.errors import ApiError, NotConfiguredError
from themesite.i18n import build_locale_preference, get_contact_copy, resolve_primary_locale, resolve_text
from themesite.services.contact_form import ContactFormService, normalise_checkbox_value, parse_number

from conftest import CONTACT_FORM, FakeApi, FakeClock


def build_service(routes=None, form_id="form-1", form_slug="contact", api_key="key", ttl=300):
    api = FakeApi(routes if routes is not None else {("GET", "/forms/form-1"): {"form": CONTACT_FORM}})
    clock = FakeClock()
    service = ContactFormService(
        api,
        form_id=form_id,
        form_slug=form_slug,
        api_key=api_key,
        default_locale="tr",
        ttl=ttl,
        clock=clock,
    )
    return service, api, clock


def schema_form(fields):
    return {"fields": fields, "settings": {}}


def field(name, field_type="text", **extra):
    return dict({"name": name, "type": field_type, "label": name.title(), "required": False,
                 "validation": {}, "options": [], "default_value": None}, **extra)


def test_resolve_text_order():
    value = {"de": "Hallo", "en": "Hello", "tr": "Merhaba"}

    assert resolve_text(value, ["en-GB", "en"]) == "Hello"
    assert resolve_text(value, ["fr"], default_locale="tr") == "Merhaba"
    assert resolve_text({"de": "Hallo"}, ["fr"]) == "Hallo"
    assert resolve_text("plain", ["en"]) == "plain"
    assert resolve_text(None) == ""


def test_locale_preference_and_primary_locale():
    pref = build_locale_preference("tr", ["tr"], "en", ["en-US", "en", ""])

    assert pref == ["tr", "en", "en-US"]
    assert resolve_primary_locale(pref) == "en"
    assert resolve_primary_locale(["de"]) == "de"
    assert resolve_primary_locale([]) == "tr"
    assert get_contact_copy(["tr"])["submit_button_text"] == "Gönder"
    assert get_contact_copy(["en-US"])["locale"] == "en-us"


def test_normalise_checkbox_value():
    assert normalise_checkbox_value(["a", None, "", "b"]) == ["a", "b"]
    assert normalise_checkbox_value("x") == ["x"]
    assert normalise_checkbox_value(None) == []


def test_parse_number():
    assert parse_number("42") == 42
    assert parse_number("2.5") == 2.5
    assert parse_number("abc") is None
    assert parse_number(" -3e2 ") == -300
    assert parse_number(".5") == 0.5
    assert parse_number("nan") is None
    assert parse_number(True) is None


@pytest.mark.parametrize("raw", ["inf", "-Infinity", "1_000", "0x1A", "1e999", "1.2.3"])
def test_parse_number_rejects_non_decimal_input(raw):
    assert parse_number(raw) is None


def test_non_finite_number_is_a_field_error():
    service, _, _ = build_service()
    form = schema_form([field("qty", "number", label="Qty")])

    errors, _, data = service.build_submission_payload(form, {"qty": "inf"}, ["en"])

    assert errors == {"qty": "Qty must be a valid number."}
    assert data == {}


def test_get_contact_form_normalises_and_sorts_fields():
    service, _, _ = build_service()

    form = service.get_contact_form(["en"])

    assert form["title"] == "Contact us"
    assert [f["name"] for f in form["fields"]] == ["name", "email", "message"]
    assert form["settings"]["submit_button_text"] == "Send"
    assert form["settings"]["enable_honeypot"] is True
    assert service.resolve_text(form["settings"]["success_message"], ["en"]) == "Thanks, we got it!"


def test_get_contact_form_is_cached_per_locale_preference():
    service, api, clock = build_service(ttl=300)

    service.get_contact_form(["en"])
    service.get_contact_form(["en"])
    assert len(api.calls) == 1

    service.get_contact_form(["tr"])
    assert len(api.calls) == 2

    clock.advance(301)
    service.get_contact_form(["tr"])
    assert len(api.calls) == 3


def test_get_contact_form_falls_back_to_public_slug():
    routes = {
        ("GET", "/forms/form-1"): ApiError("forbidden", status=403),
        ("GET", "/public/forms/contact"): {"form": dict(CONTACT_FORM, settings={"enableHoneypot": False})},
    }
    service, api, _ = build_service(routes)

    form = service.get_contact_form("en")

    assert api.paths() == ["/forms/form-1", "/public/forms/contact"]
    assert form["settings"]["enable_honeypot"] is False
    assert form["settings"]["submit_button_text"] == "Submit"


def test_get_contact_form_returns_none_when_unavailable():
    service, _, _ = build_service(routes={})

    assert service.get_contact_form("en") is None


def test_get_contact_form_keeps_stale_form_when_both_fetches_fail():
    service, api, clock = build_service(ttl=10)
    form = service.get_contact_form(["en"])

    api.set("/forms/form-1", ApiError("down", status=503))
    api.set("/public/forms/contact", ApiError("down", status=503))
    clock.advance(11)

    assert service.get_contact_form(["en"]) == form


def test_unconfigured_form_is_none():
    service, api, _ = build_service(form_id="", form_slug="")

    assert service.configured is False
    assert service.get_contact_form("en") is None
    assert api.calls == []


def test_missing_form_yields_form_error():
    service, _, _ = build_service()

    errors, values, data = service.build_submission_payload(None, {"a": "b"}, ["en"])

    assert errors == {"form": "Form is unavailable."}
    assert values == {} and data == {}


def test_required_and_email_validation():
    service, _, _ = build_service()
    form = schema_form([field("name", required=True), field("email", "email", label="Email")])

    errors, values, data = service.build_submission_payload(form, {"name": "  ", "email": "nope"}, ["en"])

    assert errors == {"name": "Name is required.", "email": "Please enter a valid email address."}
    assert values == {"name": "", "email": "nope"}
    assert data == {}


def test_valid_submission_collects_trimmed_values():
    service, _, _ = build_service()
    form = schema_form([
        field("name", required=True),
        field("email", "email"),
        field("phone", "phone"),
        field("topic", "select", options=[{"value": "press", "label": "Press"}]),
    ])
    body = {"name": " Ada ", "email": "ada@example.org", "phone": "+90 (212) 555-1234", "topic": "press"}

    errors, _, data = service.build_submission_payload(form, body, ["en"])

    assert errors == {}
    assert data == {"name": "Ada", "email": "ada@example.org", "phone": "+90 (212) 555-1234", "topic": "press"}


def test_select_rejects_unknown_option():
    service, _, _ = build_service()
    form = schema_form([field("topic", "radio", label="Topic", options=[{"value": "a", "label": "A"}])])

    errors, _, data = service.build_submission_payload(form, {"topic": "z"}, ["en"])

    assert errors == {"topic": "Invalid selection for Topic."}
    assert data == {}


def test_number_bounds_exclude_value_from_data():
    service, _, _ = build_service()
    form = schema_form([
        field("age", "number", label="Age", validation={"min": "18", "max": 10}),
        field("score", "rating", label="Score", validation={"max": 5}),
        field("count", "number", label="Count"),
    ])

    errors, values, data = service.build_submission_payload(form, {"age": "12", "score": "4", "count": "x"}, ["en"])

    assert errors["age"] == "Age cannot be greater than 10."
    assert errors["count"] == "Count must be a valid number."
    assert values["age"] == "12"
    assert data == {"score": 4}


def test_number_custom_error_message_is_localised():
    service, _, _ = build_service()
    form = schema_form([
        field("age", "number", validation={"max": 10, "errorMessage": {"en": "Too old", "tr": "Çok yaşlı"}}),
    ])

    errors, _, _ = service.build_submission_payload(form, {"age": "11"}, ["tr"])

    assert errors == {"age": "Çok yaşlı"}


def test_checkbox_required_and_tokens():
    service, _, _ = build_service()
    form = schema_form([field("agree", "checkbox", required=True), field("tags", "checkbox")])

    errors, _, data = service.build_submission_payload(form, {"tags": ["a", "b"]}, ["en"])

    assert errors == {"agree": "Agree is required."}
    assert data == {"tags": ["a", "b"]}


def test_file_section_and_hidden_fields():
    service, _, _ = build_service()
    form = schema_form([
        field("intro", "section"),
        field("upload", "file"),
        field("source", "hidden", default_value="homepage"),
        field("empty", "hidden"),
    ])

    errors, values, data = service.build_submission_payload(form, {}, ["en"])

    assert errors == {"upload": "File uploads are not supported by this theme yet."}
    assert "intro" not in values
    assert data == {"source": "homepage"}
    assert values["empty"] == ""


def test_default_value_is_used_when_body_is_empty():
    service, _, _ = build_service()
    form = schema_form([field("when", "date", default_value="2024-01-01")])

    _, _, data = service.build_submission_payload(form, {"when": ""}, ["en"])

    assert data == {"when": "2024-01-01"}


def test_validation_messages_follow_locale():
    service, _, _ = build_service()
    form = schema_form([field("ad", required=True, label="Ad")])

    errors, _, _ = service.build_submission_payload(form, {}, ["tr"])

    assert errors == {"ad": "Ad alanı zorunludur."}


def test_submit_contact_form_posts_payload():
    service, api, _ = build_service(routes={("POST", "/public/forms/form-1/submit"): {"message": "ok"}})

    result = service.submit_contact_form({"name": "Ada"}, locale="en")

    call = api.calls[0]
    assert result == {"message": "ok"}
    assert call["method"] == "POST"
    assert call["headers"] == {"X-API-Key": "key"}
    assert call["body"] == {"apiKey": "key", "data": {"name": "Ada"}, "locale": "en", "source": "web", "honeypot": ""}


@pytest.mark.parametrize("overrides", [{"api_key": ""}, {"form_id": ""}])
def test_submit_requires_key_and_form_id(overrides):
    service, api, _ = build_service(**overrides)

    with pytest.raises(NotConfiguredError):
        service.submit_contact_form({"name": "Ada"})
    assert api.calls == []
