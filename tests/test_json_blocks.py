from services.extraction.json_blocks import locate_json_text, normalize_json_text, parse_json_block


def test_prefers_fenced_block_over_surrounding_braces():
    text = 'Note {not json}\n```json\n{"score": 90}\n```\nthanks {bye}'
    assert locate_json_text(text) == '{"score": 90}'


def test_falls_back_to_outermost_braces():
    text = 'Sure! {"a": {"b": 1}} Hope this helps.'
    assert locate_json_text(text) == '{"a": {"b": 1}}'


def test_no_braces_returns_none():
    assert locate_json_text("I cannot assess this item.") is None
    assert locate_json_text("") is None


def test_strict_parse_is_not_marked_repaired():
    result = parse_json_block('{"score": 75, "confidence": 60}')
    assert result.ok
    assert result.value == {"score": 75, "confidence": 60}
    assert result.repaired is False


def test_trailing_commas_are_repaired():
    result = parse_json_block('{"redFlags": ["seam",], "score": 40,}')
    assert result.ok
    assert result.repaired is True
    assert result.value == {"redFlags": ["seam"], "score": 40}


def test_curly_quotes_are_straightened():
    assert normalize_json_text("{“verdict”: “AUTHENTIC”}") == '{"verdict": "AUTHENTIC"}'
    result = parse_json_block("{“score”: 88}")
    assert result.value == {"score": 88}


def test_non_object_json_is_an_error():
    result = parse_json_block("```\n[1, 2, 3]\n```")
    assert not result.ok
    assert result.value is None


def test_garbage_reports_error():
    result = parse_json_block("{score: high}")
    assert not result.ok
    assert "not valid JSON" in result.error


def test_single_trailing_comma():
    assert parse_json_block('{"score":80,}').value == {"score": 80}
