import dataclasses
from datetime import datetime, timezone

import pytest

from scheduled_tasks_manager.core.models import (
    EventRecord,
    ResultCodeMeaning,
    ResultCodeTranslation,
    ResultSource,
    normalize_correlation_id,
)


@pytest.mark.parametrize(
    "value, expected",
    [
        ("{abc-def}", "ABC-DEF"),
        (" ABC-DEF ", "ABC-DEF"),
        ("{}", None),
        ("", None),
        (None, None),
    ],
)
def test_normalize_correlation_id(value, expected):
    assert normalize_correlation_id(value) == expected


def test_event_record_normalizes_token(make_event):
    event = make_event(1, correlation_id="{abc}")
    assert event.correlation_id == "ABC"


def test_event_record_is_immutable(make_event):
    event = make_event(1)
    with pytest.raises(dataclasses.FrozenInstanceError):
        event.record_id = 2


def test_translation_requires_a_meaning():
    with pytest.raises(ValueError):
        ResultCodeTranslation(raw_code=0, hex_code="0x00000000", meanings=())


def test_translation_mirrors_primary_meaning():
    translation = ResultCodeTranslation(
        raw_code=5,
        hex_code="0x00000005",
        meanings=(
            ResultCodeMeaning(ResultSource.WIN32, "Access is denied.", "ERROR_ACCESS_DENIED"),
            ResultCodeMeaning(ResultSource.UNKNOWN, "Other."),
        ),
    )
    assert translation.primary is translation.meanings[0]
    assert translation.constant_name == "ERROR_ACCESS_DENIED"
    assert translation.is_success is False


def test_event_record_treats_naive_time_as_utc(make_event):
    aware = make_event(1)
    naive = EventRecord(record_id=2, time_created=aware.time_created.replace(tzinfo=None))
    assert naive.time_created.tzinfo == timezone.utc
    assert naive.time_created == aware.time_created


def test_event_record_fields_are_read_only_copy():
    fields = {"ResultCode": "0"}
    event = EventRecord(
        record_id=1,
        time_created=datetime(2024, 5, 1, tzinfo=timezone.utc),
        named_fields=fields,
    )
    fields["ResultCode"] = "1"
    assert event.named_fields["ResultCode"] == "0"
    with pytest.raises(TypeError):
        event.named_fields["ResultCode"] = "2"
    assert hash(event) == hash(
        EventRecord(
            record_id=1,
            time_created=datetime(2024, 5, 1, tzinfo=timezone.utc),
            named_fields={"ResultCode": "0"},
        )
    )
    assert event.to_dict()["named_fields"] == {"ResultCode": "0"}
