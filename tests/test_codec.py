from __future__ import annotations

from dataclasses import dataclass

import pytest

from jstore.codec import compact, decode_entry, encode_entries, encode_value, is_valid_entry
from jstore.errors import CorruptEntryError, EntryTooLargeError, NotJSONError, NotUTF8Error


def test_compacts_and_appends_single_newline():
    assert encode_entries(b'  {"abc": { "key" : "value" }}  ') == b'{"abc":{"key":"value"}}\n'


def test_existing_trailing_newline_not_doubled():
    assert encode_entries(b'{"a":1}\n') == b'{"a":1}\n'


def test_whitespace_inside_strings_is_kept():
    assert encode_entries('{"a b": "c  d\\t", "e": "x\\"y z"}') == b'{"a b":"c  d\\t","e":"x\\"y z"}\n'


def test_numbers_and_escapes_kept_as_written():
    assert encode_entries(b'[1.50, 1e3, "\\u00e9"]') == b'[1.50,1e3,"\\u00e9"]\n'


def test_pretty_printed_document_is_one_entry():
    payload = b'{\n  "a": [\n    1,\n    2\n  ]\n}\n'
    assert encode_entries(payload) == b'{"a":[1,2]}\n'


def test_batch_becomes_one_line_per_document():
    payload = b'{"abc":{"k":"v"}}\n\t{"efg":{"h":"i"}}'
    assert encode_entries(payload) == b'{"abc":{"k":"v"}}\n{"efg":{"h":"i"}}\n'


def test_batch_ignores_blank_lines():
    assert encode_entries(b'1\n\n  \n2\n') == b"1\n2\n"


def test_batch_with_one_bad_line_is_rejected():
    with pytest.raises(NotJSONError, match="line 2 of 3"):
        encode_entries(b'{"a":1}\n{"b":\n{"c":3}')


@pytest.mark.parametrize("payload", [b"aaaa", b"", b"   \n", b'{"a":1', b"NaN", b"[Infinity]"])
def test_invalid_json_rejected(payload):
    with pytest.raises(NotJSONError):
        encode_entries(payload)


def test_invalid_utf8_rejected():
    with pytest.raises(NotUTF8Error):
        encode_entries(b'"\xff\xfe"')


def test_unencodable_str_rejected():
    with pytest.raises(NotUTF8Error):
        encode_entries('"\ud800"')


def test_errors_are_value_errors():
    with pytest.raises(ValueError):
        encode_entries(b"nope")


def test_entry_size_cap():
    assert encode_entries(b'"0123456789"', max_entry_size=12) == b'"0123456789"\n'
    with pytest.raises(EntryTooLargeError):
        encode_entries(b'"01234567890"', max_entry_size=12)


def test_size_cap_applies_per_batch_line():
    with pytest.raises(EntryTooLargeError):
        encode_entries(b'1\n"a long enough line"', max_entry_size=8)


def test_compact_only_touches_whitespace_outside_strings():
    assert compact('{ "k" : [ 1 , 2 ] , "s" : " a " }') == '{"k":[1,2],"s":" a "}'


@dataclass
class Point:
    x: int
    y: int


class Tagged:
    def to_dict(self):
        return {"tag": "t"}


def test_encode_value_handles_dataclass_and_to_dict():
    assert encode_value(Point(1, 2)) == b'{"x":1,"y":2}\n'
    assert encode_value(Tagged()) == b'{"tag":"t"}\n'
    assert encode_value({"é": [1, None]}) == '{"é":[1,null]}\n'.encode()


def test_encode_value_rejects_unserializable():
    with pytest.raises(NotJSONError):
        encode_value({"s": {1, 2}})
    with pytest.raises(NotJSONError):
        encode_value(float("nan"))


def test_decode_entry():
    assert decode_entry(b'{"x":1,"y":2}') == {"x": 1, "y": 2}
    assert decode_entry(b'{"x":1,"y":2}', lambda d: Point(**d)) == Point(1, 2)


def test_decode_entry_corrupt():
    with pytest.raises(CorruptEntryError) as exc_info:
        decode_entry(b'{"maybe": {"this was once', ordinal=7)
    assert exc_info.value.ordinal == 7


def test_is_valid_entry():
    assert is_valid_entry(b"[]")
    assert not is_valid_entry(b"")
    assert not is_valid_entry(b"\xff")
    assert not is_valid_entry(b'{"a"')
