"""Tests for epimetheus.services.decoders."""

from __future__ import annotations

import logging

import pytest

from epimetheus.core.errors import DecodeError
from epimetheus.services.decoders import decode
from epimetheus.services.flattener import flatten
from epimetheus.services.value_tree import NULL, Boolean, Mapping, Number, Sequence, Text


def test_decode_json_preserves_key_order() -> None:
    tree = decode(b'{"b": 1, "a": [true, null, "x"]}', "json", "doc.json")

    assert isinstance(tree, Mapping)
    assert [key for key, _ in tree.entries] == ["b", "a"]
    assert dict(tree.entries)["a"] == Sequence((Boolean(True), NULL, Text("x")))


def test_decode_json_malformed_raises_with_source() -> None:
    with pytest.raises(DecodeError) as excinfo:
        decode(b'{"a": ', "json", "broken.json")

    assert excinfo.value.source == "broken.json"
    assert "broken.json" in str(excinfo.value)


def test_decode_json_invalid_encoding_raises() -> None:
    with pytest.raises(DecodeError):
        decode(b"\xff\xfe\xfa", "json", "bad.json")


def test_decode_yaml_converts_non_string_keys() -> None:
    tree = decode(b"1: 5\ntrue: 2\nname: db\nnested:\n  ratio: 0.5\n", "yaml", "doc.yaml")

    assert isinstance(tree, Mapping)
    assert [key for key, _ in tree.entries] == ["1", "True", "name", "nested"]
    assert dict(tree.entries)["1"] == Number(5.0)
    assert flatten(tree) == [("_1", 5.0), ("True", 2.0), ("nested_ratio", 0.5)]


def test_decode_yaml_dates_become_text() -> None:
    tree = decode(b"when: 2024-01-02\nn: 1\n", "yaml", "doc.yaml")

    assert dict(tree.entries)["when"] == Text("2024-01-02")


def test_decode_empty_yaml_is_null() -> None:
    assert decode(b"", "yaml", "empty.yaml") == NULL


def test_decode_yaml_malformed_raises() -> None:
    with pytest.raises(DecodeError):
        decode(b"a: [1, 2\nb: }", "yaml", "broken.yaml")


def test_decode_yaml_multiple_documents_is_malformed() -> None:
    with pytest.raises(DecodeError):
        decode(b"a: 1\n---\nb: 2\n", "yaml", "multi.yaml")


def test_decode_csv_rows_become_mappings() -> None:
    tree = decode(b"host,load,up\nweb1,0.5,1\nweb2,1.25,0\n", "csv", "hosts.csv")

    assert tree == Sequence(
        (
            Mapping((("host", Text("web1")), ("load", Number(0.5)), ("up", Number(1.0)))),
            Mapping((("host", Text("web2")), ("load", Number(1.25)), ("up", Number(0.0)))),
        )
    )


def test_decode_csv_skips_malformed_rows(caplog: pytest.LogCaptureFixture) -> None:
    with caplog.at_level(logging.WARNING, logger="epimetheus.services.decoders"):
        tree = decode(b"a,b\n1,x\n2\n", "csv", "feed.csv")

    assert flatten(tree) == [("_0_a", 1.0)]
    assert "skipping malformed row" in caplog.text
    assert "line=3" in caplog.text


def test_decode_csv_continues_after_malformed_row() -> None:
    tree = decode(b"a,b\n1,2\n3\n4,5,6\n7,8\n", "csv", "feed.csv")

    assert flatten(tree) == [("_0_a", 1.0), ("_0_b", 2.0), ("_1_a", 7.0), ("_1_b", 8.0)]


def test_decode_csv_handles_bom_blank_lines_and_quotes() -> None:
    content = '\ufeffname,"v,1"\n\n"a, b",3\n'.encode("utf-8")

    tree = decode(content, "csv", "quoted.csv")

    assert tree == Sequence((Mapping((("name", Text("a, b")), ("v,1", Number(3.0)))),))


def test_decode_csv_header_only_is_empty_sequence() -> None:
    assert decode(b"a,b\n", "csv", "empty.csv") == Sequence()


def test_decode_csv_requires_header() -> None:
    with pytest.raises(DecodeError, match="header"):
        decode(b"", "csv", "none.csv")


@pytest.mark.parametrize("fmt", [None, "xml"])
def test_decode_unknown_format_raises(fmt: str | None) -> None:
    with pytest.raises(DecodeError):
        decode(b"{}", fmt, "thing")
