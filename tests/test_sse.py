import json
import unittest

from backend.models.chat_model import StreamEnvelope, TokenUsage
from backend.services.errors import ParseError
from backend.utils.sse import (
    DeltaChunk,
    DoneSentinel,
    SSELineBuffer,
    Unrecognized,
    UsageChunk,
    data_of,
    decode_provider_line,
    iter_lines,
)


class LineBufferTests(unittest.TestCase):
    def test_lines_split_across_chunks_are_joined(self) -> None:
        lines = list(iter_lines([b'data: {"a"', b': 1}\n\ndata: [DO', b"NE]\n\n"]))
        self.assertEqual(['data: {"a": 1}', "", "data: [DONE]", ""], lines)

    def test_multibyte_character_split_between_reads(self) -> None:
        encoded = "data: héllo\n".encode("utf-8")
        cut = encoded.index(b"\xc3") + 1
        buffer = SSELineBuffer()
        self.assertEqual([], buffer.feed(encoded[:cut]))
        self.assertEqual(["data: héllo"], buffer.feed(encoded[cut:]))

    def test_trailing_line_without_newline_is_flushed(self) -> None:
        self.assertEqual(["data: x"], list(iter_lines([b"data: x"])))

    def test_crlf_line_endings(self) -> None:
        self.assertEqual(["data: x", ""], list(iter_lines([b"data: x\r\n\r\n"])))


class DecodeProviderLineTests(unittest.TestCase):
    def test_data_prefix(self) -> None:
        self.assertEqual("[DONE]", data_of("data: [DONE]"))
        self.assertIsNone(data_of(": keep-alive"))
        self.assertIsNone(data_of("event: message"))

    def test_done_sentinel(self) -> None:
        self.assertEqual([DoneSentinel()], decode_provider_line("[DONE]"))

    def test_delta_chunk(self) -> None:
        events = decode_provider_line(json.dumps({"choices": [{"delta": {"content": "Hi"}}]}))
        self.assertEqual([DeltaChunk("Hi")], events)

    def test_usage_only_chunk(self) -> None:
        events = decode_provider_line(json.dumps({"choices": [], "usage": {"prompt_tokens": 2, "completion_tokens": 3, "total_tokens": 5}}))
        self.assertEqual([UsageChunk(TokenUsage(prompt_tokens=2, completion_tokens=3, total_tokens=5))], events)

    def test_delta_and_usage_in_one_payload(self) -> None:
        payload = {"choices": [{"delta": {"content": "!"}}], "usage": {"total_tokens": 9}}
        events = decode_provider_line(json.dumps(payload))
        self.assertIsInstance(events[0], DeltaChunk)
        self.assertIsInstance(events[1], UsageChunk)

    def test_role_only_delta_is_unrecognized(self) -> None:
        events = decode_provider_line(json.dumps({"choices": [{"delta": {"role": "assistant"}}]}))
        self.assertEqual(1, len(events))
        self.assertIsInstance(events[0], Unrecognized)

    def test_non_object_payload_is_unrecognized(self) -> None:
        self.assertIsInstance(decode_provider_line("[1, 2]")[0], Unrecognized)

    def test_malformed_json_raises_parse_error(self) -> None:
        with self.assertRaises(ParseError):
            decode_provider_line("{not json")


class EnvelopeFramingTests(unittest.TestCase):
    def test_content_frame(self) -> None:
        self.assertEqual('data: {"content": "Hi"}\n\n', StreamEnvelope.text("Hi").to_sse())

    def test_usage_frame_uses_camel_case(self) -> None:
        frame = StreamEnvelope.accounting(TokenUsage(prompt_tokens=1, completion_tokens=2, total_tokens=3)).to_sse()
        self.assertTrue(frame.startswith("data: ") and frame.endswith("\n\n"))
        self.assertEqual(
            {"usage": {"promptTokens": 1, "completionTokens": 2, "totalTokens": 3}},
            json.loads(frame[len("data: "):]),
        )

    def test_error_frame(self) -> None:
        self.assertEqual({"error": "Stream interrupted"}, json.loads(StreamEnvelope.failure("Stream interrupted").to_sse()[6:]))


if __name__ == "__main__":
    unittest.main()
