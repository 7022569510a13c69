import json

import pytest

from w3etools.options import DEFAULT_OPTIONS, CodecOptions


def test_defaults():
    assert DEFAULT_OPTIONS.strict is False
    assert DEFAULT_OPTIONS.validate_header is True
    assert DEFAULT_OPTIONS.supported_versions == (11,)


def test_from_file(tmp_path):
    path = tmp_path / "options.json"
    path.write_text(json.dumps({"strict": True, "supported_versions": [11, 12]}), encoding="utf-8")
    options = CodecOptions.from_file(path)
    assert options.strict is True
    assert options.supported_versions == (11, 12)
    assert options.initial_capacity == 1024


def test_unknown_keys_rejected():
    with pytest.raises(ValueError):
        CodecOptions.from_dict({"strcit": True})
    with pytest.raises(ValueError):
        CodecOptions.from_dict([])


def test_invalid_values_rejected():
    with pytest.raises(ValueError):
        CodecOptions(initial_capacity=0)
    with pytest.raises(ValueError):
        CodecOptions(supported_versions=())


def test_with_overrides_is_a_copy():
    strict = DEFAULT_OPTIONS.with_overrides(strict=True)
    assert strict.strict is True
    assert DEFAULT_OPTIONS.strict is False
