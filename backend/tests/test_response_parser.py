"""
test_response_parser.py — Unit tests for generative-call response handling.

Tests cover:
  - Extracting the first balanced JSON object (prose, code fences, strings
    containing braces, unbalanced prefixes)
  - ResponseParseError for empty / non-JSON / invalid JSON responses
  - call_stage outcomes: ok, no generator, timeout, call failure,
    unparseable response, schema validation failure
"""

import asyncio

import pytest
from pydantic import BaseModel

from estimator.services.errors import ResponseParseError
from estimator.services.response_parser import StageResult, call_stage, extract_json_object


class _Payload(BaseModel):
    value: int


class _FixedGenerator:
    def __init__(self, reply, delay=0.0, error=None):
        self.reply = reply
        self.delay = delay
        self.error = error

    async def generate(self, prompt, system=""):
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.error:
            raise self.error
        return self.reply


def _run(generator, timeout=1.0):
    return asyncio.run(call_stage(
        generator,
        "prompt",
        timeout,
        parse=lambda data: _Payload.model_validate(data),
        fallback=lambda: "local",
        stage="test",
    ))


# ===========================================================================
# Class 1: JSON extraction
# ===========================================================================

class TestExtractJsonObject:

    def test_object_inside_prose(self):
        assert extract_json_object('Here you go: {"value": 3} hope that helps') == {"value": 3}

    def test_code_fence(self):
        text = 'Result:\n```json\n{"sheets": [{"pageNumber": 1}]}\n```\n'
        assert extract_json_object(text) == {"sheets": [{"pageNumber": 1}]}

    def test_nested_and_braces_in_strings(self):
        text = '{"note": "use {braces} freely", "inner": {"a": [1, 2]}} trailing }'
        assert extract_json_object(text) == {"note": "use {braces} freely", "inner": {"a": [1, 2]}}

    def test_unbalanced_prefix_skipped(self):
        assert extract_json_object('{ broken  {"value": 7}') == {"value": 7}

    def test_first_object_wins(self):
        assert extract_json_object('{"value": 1} {"value": 2}') == {"value": 1}

    @pytest.mark.parametrize("text", [None, "", "   ", "no json here", "[1, 2, 3]"])
    def test_no_object_raises(self, text):
        with pytest.raises(ResponseParseError):
            extract_json_object(text)

    def test_invalid_json_reports_reason(self):
        with pytest.raises(ResponseParseError) as exc:
            extract_json_object("{'single': 'quotes'}")
        assert "invalid JSON" in exc.value.reason


# ===========================================================================
# Class 2: call_stage
# ===========================================================================

class TestCallStage:

    def test_ok(self):
        result = _run(_FixedGenerator('{"value": 42}'))
        assert result.status == "ok"
        assert result.data.value == 42
        assert result.to_dict() == {"status": "ok"}

    def test_no_generator(self):
        result = _run(None)
        assert result.is_fallback
        assert result.data == "local"
        assert result.reason == "no text generator configured"

    def test_timeout(self):
        result = _run(_FixedGenerator('{"value": 1}', delay=0.5), timeout=0.05)
        assert result.is_fallback
        assert result.data == "local"
        assert result.reason.startswith("timeout after")

    def test_call_failure(self):
        result = _run(_FixedGenerator("", error=ConnectionError("refused")))
        assert result.is_fallback
        assert result.reason == "call failed: ConnectionError"

    def test_non_json_response(self):
        result = _run(_FixedGenerator("I could not read the drawings, sorry."))
        assert result.is_fallback
        assert result.data == "local"
        assert result.to_dict() == {"status": "fallback", "reason": "no JSON object found"}

    def test_schema_mismatch(self):
        result = _run(_FixedGenerator('{"value": "many"}'))
        assert result.is_fallback
        assert result.reason == "response failed validation"

    def test_fallback_not_called_on_success(self):
        calls = []

        def fallback():
            calls.append(1)
            return "local"

        result = asyncio.run(call_stage(
            _FixedGenerator('{"value": 5}'), "p", 1.0,
            parse=lambda d: d["value"], fallback=fallback,
        ))
        assert result == StageResult.ok(5)
        assert calls == []
