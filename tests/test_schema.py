from __future__ import annotations

import json
from pathlib import Path as FsPath

import pytest

from regforge.dsl.model import AccessPolicy, Path
from regforge.dsl.schema import load_schema, parse_schema
from regforge.errors import AnalysisError, ErrorKind, ParseError
from regforge.pipeline import compile_spec

SAMPLES = FsPath(__file__).resolve().parent.parent / "samples"


def _doc(**fields):
    base = {
        "constants": {"rro::CTRL": "0x00"},
        "ports": ["0x4000_1000"],
        "fields": [{"name": "enable", "bit": 0, "access": "RW", "register": "rro::CTRL"}],
    }
    base.update(fields)
    return base


def test_load_timer_sample():
    spec = load_schema(SAMPLES / "timer.json")
    assert spec.ports == (Path(("mmio", "TIMER_0")), Path(("mmio", "TIMER_1")))
    by_name = {f.name: f for f in spec.fields}
    assert by_name["count"].bit.resolve(32) == (0, 31)
    assert by_name["prescaler_a"].bit.resolve(32) == (4, 7)
    assert by_name["irq_a"].policy is AccessPolicy.READ_WRITE_CLEAR
    assert by_name["irq_a"].docs == ("Timer A interrupt event.",)
    assert {str(c.path): c.value for c in spec.constants}["rro::TMR_CTRL0"] == 0x10


def test_numeric_ports_and_constants():
    spec = parse_schema(_doc(ports=[0x4000_1000, "0x4000_2000"]))
    assert spec.ports == (0x4000_1000, 0x4000_2000)
    assert spec.constants[0].value == 0


@pytest.mark.parametrize(
    "field,message",
    [
        ({"name": "x", "bit": "1.5", "access": "RW", "register": "R"}, "integer literals"),
        ({"name": "x", "bit": "5..=3", "access": "RW", "register": "R"}, "inverted or empty"),
        ({"name": "x", "bit": "0..=3 junk", "access": "RW", "register": "R"}, "after the bit specification"),
        ({"name": "x", "bit": True, "access": "RW", "register": "R"}, "Expected string"),
        ({"name": "x", "bit": 0, "access": "RWX", "register": "R"}, "Unknown access policy"),
        ({"name": "x", "bit": 0, "access": "RW", "register": "0x10"}, "constant required"),
        ({"name": "x", "bit": 0, "access": "RW", "register": 4}, "Expected string"),
        ({"name": "1x", "bit": 0, "access": "RW", "register": "R"}, "not an identifier"),
        ({"name": "x", "bit": 0, "access": "RW", "register": "R", "doc": 3}, "doc must be"),
    ],
)
def test_field_errors(field, message):
    with pytest.raises(ParseError, match=message):
        parse_schema(_doc(fields=[field]))


@pytest.mark.parametrize(
    "doc,message",
    [
        ([], "Top-level JSON must be a dict"),
        ({"fields": {}}, "\"fields\" must be an array"),
        (_doc(ports="0x1"), "\"ports\" must be an array"),
        (_doc(constants=[]), "\"constants\" must be a dict"),
        (_doc(constants={"R": "-1"}), "Negative value"),
        (_doc(constants={"R": "zz"}), "Invalid numeric literal"),
    ],
)
def test_document_errors(doc, message):
    with pytest.raises(ParseError, match=message):
        parse_schema(doc)


def test_invalid_json_reports_position(tmp_path):
    p = tmp_path / "bad.json"
    p.write_text('{"fields": [\n  }', encoding="utf-8")
    with pytest.raises(ParseError, match="invalid JSON") as exc:
        load_schema(p)
    assert exc.value.line == 2


def test_roundtrip_through_json(tmp_path):
    p = tmp_path / "dev.json"
    p.write_text(json.dumps(_doc()), encoding="utf-8")
    spec = load_schema(p)
    assert spec.source == str(p)
    assert spec.fields[0].path == Path(("rro", "CTRL"))


def test_register_name_must_be_an_identifier():
    spec = parse_schema(_doc(fields=[{"name": "en", "bit": 0, "access": "RW", "register": "rro::CTRL-A"}]))
    with pytest.raises(AnalysisError, match="not usable as an identifier") as exc:
        compile_spec(spec)
    assert exc.value.kind is ErrorKind.BAD_PARAM
