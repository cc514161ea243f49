"""
Unit tests for streaming/frames.py
"""

import json

import pytest

from synthoria.streaming.frames import (
    DONE,
    AnswerFrame,
    DoneFrame,
    ErrorFrame,
    ReasoningDurationFrame,
    ReasoningFrame,
    decode_payload,
    encode_frame,
    format_record,
)


@pytest.mark.unit
class TestEncoding:

    def test_answer_frame(self):
        assert json.loads(encode_frame(AnswerFrame(delta="Hel"))) == {"type": "answer", "delta": "Hel"}

    def test_duration_uses_camel_case(self):
        payload = json.loads(encode_frame(ReasoningDurationFrame(duration_ms=1234)))
        assert payload == {"type": "reasoning_duration", "durationMs": 1234}

    def test_done_is_literal_marker(self):
        assert encode_frame(DONE) == "[DONE]"
        assert DoneFrame() is DONE

    def test_record_is_blank_line_terminated(self):
        record = format_record(ErrorFrame(error="rate limited"))
        assert record.startswith("data: {")
        assert record.endswith("\n\n")

    def test_negative_duration_rejected(self):
        with pytest.raises(ValueError):
            ReasoningDurationFrame(duration_ms=-1)


@pytest.mark.unit
class TestDecoding:

    def test_decodes_each_frame_type(self):
        assert decode_payload('{"type":"reasoning","delta":"hm"}') == ReasoningFrame(delta="hm")
        assert decode_payload('{"type":"answer","delta":"hi"}') == AnswerFrame(delta="hi")
        assert decode_payload('{"type":"reasoning_duration","durationMs":5}') == ReasoningDurationFrame(duration_ms=5)
        assert decode_payload('{"type":"error","error":"x"}') == ErrorFrame(error="x")

    def test_done_marker(self):
        assert decode_payload("[DONE]") is DONE
        assert decode_payload(" [DONE] ") is DONE

    @pytest.mark.parametrize("payload", [
        "not json",
        '{"type":"answer"}',
        '{"type":"telemetry","delta":"x"}',
        '{"delta":"x"}',
        "",
    ])
    def test_malformed_payloads_decode_to_none(self, payload):
        assert decode_payload(payload) is None
