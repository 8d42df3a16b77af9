from __future__ import annotations

import csv
import io
import json
import logging
from typing import Callable, Dict

import yaml

from epimetheus.core.errors import DecodeError
from epimetheus.services.value_tree import Mapping, Sequence, Text, Value, from_native, parse_number

LOG = logging.getLogger(__name__)

Decoder = Callable[[bytes, str], Value]
_registry: Dict[str, Decoder] = {}


def register_decoder(fmt: str):
    def deco(fn: Decoder):
        _registry[fmt] = fn
        return fn
    return deco


def decode(content: bytes, fmt: str | None, source: str = "-") -> Value:
    """Decode raw bytes of the given format into a value tree.

    Raises DecodeError for malformed input or a missing/unsupported format.
    """
    if fmt is None:
        raise DecodeError(source, "unable to determine format")
    fn = _registry.get(fmt)
    if fn is None:
        raise DecodeError(source, f"unsupported format {fmt!r}")
    return fn(content, source)


@register_decoder("json")
def decode_json(content: bytes, source: str) -> Value:
    try:
        return from_native(json.loads(content))
    except (ValueError, UnicodeDecodeError) as exc:
        raise DecodeError(source, exc) from exc


@register_decoder("yaml")
def decode_yaml(content: bytes, source: str) -> Value:
    try:
        return from_native(yaml.safe_load(content))
    except (yaml.YAMLError, UnicodeDecodeError) as exc:
        raise DecodeError(source, exc) from exc


@register_decoder("csv")
def decode_csv(content: bytes, source: str) -> Value:
    """Decode a headed CSV document into a sequence of row mappings.

    Rows whose column count differs from the header are skipped and logged;
    the rest of the document still decodes.
    """
    try:
        text = content.decode("utf-8-sig")
    except UnicodeDecodeError as exc:
        raise DecodeError(source, exc) from exc

    reader = csv.reader(io.StringIO(text, newline=""))
    rows: list[Value] = []
    try:
        header: list[str] | None = None
        for record in reader:
            if not record:
                continue
            if header is None:
                header = [col.strip() for col in record]
                continue
            if len(record) != len(header):
                LOG.warning(
                    "csv: skipping malformed row source=%s line=%d columns=%d expected=%d",
                    source,
                    reader.line_num,
                    len(record),
                    len(header),
                )
                continue
            cells: dict[str, Value] = {}
            for col, cell in zip(header, record):
                cells[col] = parse_number(cell) or Text(cell)
            rows.append(Mapping(tuple(cells.items())))
    except csv.Error as exc:
        raise DecodeError(source, f"line {reader.line_num}: {exc}") from exc

    if header is None:
        raise DecodeError(source, "missing csv header row")
    return Sequence(tuple(rows))
