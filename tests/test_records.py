import pytest
from pydantic import ValidationError

from influx_line_client import BatchPoint, Point, PointConfig, PointRecord
from influx_line_client.records import (
    escape_key,
    escape_measurement,
    format_field,
    now_in_precision,
)


def test_record_renders_typed_fields():
    record = PointRecord.model_validate_json(
        '{"measurement": "weather", "tags": {"location": "us-midwest"},'
        ' "fields": {"temperature": 82.5, "count": 3, "ok": true, "note": "fine"},'
        ' "time": 1465839830100400200}'
    )
    point = Point(PointConfig(database="data"))

    record.apply_to(point)

    assert point.render() == (
        b"weather,location=us-midwest "
        b'temperature=82.5,count=3i,ok=true,note="fine" 1465839830100400200\n'
    )


def test_record_escapes_special_characters():
    record = PointRecord(
        measurement="cpu load",
        tags={"host name": "a,b=c"},
        fields={"msg": 'say "hi" \\o/'},
        time=1,
    )
    point = Point()

    record.apply_to(point)

    assert point.render() == (
        b'cpu\\ load,host\\ name=a\\,b\\=c msg="say \\"hi\\" \\\\o/" 1\n'
    )


def test_record_keeps_tag_order():
    record = PointRecord(
        measurement="m", tags={"z": "1", "a": "2"}, fields={"v": 1.0}, time=0
    )
    point = Point()

    record.apply_to(point)

    assert point.render() == b"m,z=1,a=2 v=1.0 0\n"


def test_record_without_time_uses_current_time(monkeypatch):
    monkeypatch.setattr(
        "influx_line_client.records.time.time_ns", lambda: 1_700_000_000_123_456_789
    )
    record = PointRecord(measurement="m", fields={"v": 1})
    batch = BatchPoint(PointConfig(precision="s"))

    record.apply_to(batch, batch.config.precision)
    batch.commit_line()

    assert batch.payload() == b"m v=1i 1700000000\n"


def test_record_requires_fields():
    with pytest.raises(ValidationError):
        PointRecord(measurement="m", fields={})

    with pytest.raises(ValidationError):
        PointRecord.model_validate_json('{"measurement": "m"}')


@pytest.mark.parametrize(
    "value, expected",
    [
        (True, ("true", False)),
        (False, ("false", False)),
        (7, ("7i", False)),
        (-1.25, ("-1.25", False)),
        ("x", ("x", True)),
    ],
)
def test_format_field(value, expected):
    assert format_field(value) == expected


def test_escape_helpers():
    assert escape_measurement("a b,c=d") == "a\\ b\\,c=d"
    assert escape_key("a b,c=d") == "a\\ b\\,c\\=d"
    assert escape_measurement("a\nb") == "a\\nb"
    assert escape_key("x\ny") == "x\\ny"


def test_record_skips_empty_tags_and_escapes_newlines():
    record = PointRecord(
        measurement="m",
        tags={"a": "", "": "z", "b": "x\ny"},
        fields={"v": 1, "note": "two\nlines"},
        time=1,
    )
    point = Point()

    record.apply_to(point)
    line = point.render()

    assert line == b'm,b=x\\ny v=1i,note="two\\nlines" 1\n'
    assert line.count(b"\n") == 1


@pytest.mark.parametrize(
    "precision, expected",
    [("ns", 1_500_000_000_000), ("us", 1_500_000_000), ("ms", 1_500_000), ("s", 1_500)],
)
def test_now_in_precision(monkeypatch, precision, expected):
    monkeypatch.setattr(
        "influx_line_client.records.time.time_ns", lambda: 1_500_000_000_000
    )

    assert now_in_precision(precision) == expected
