import unittest

from restock_agent.intent.json_repair import (
    DEFAULT_STRATEGIES,
    DecodeResult,
    decode_llm_json,
    extract_first_object,
    repair_json_text,
    strip_code_fences,
)


class JsonRepairTests(unittest.TestCase):
    def test_strip_code_fences(self):
        self.assertEqual(
            strip_code_fences('```json\n{"intent":"chat","reply":"hello"}\n```'),
            '{"intent":"chat","reply":"hello"}',
        )
        self.assertEqual(strip_code_fences(None), "")

    def test_strip_think_preamble(self):
        text = '<think>user wants rice</think>\n{"intent":"chat","reply":"ok"}'
        self.assertEqual(strip_code_fences(text), '{"intent":"chat","reply":"ok"}')

    def test_plain_json_uses_first_tier(self):
        result = decode_llm_json('{"intent":"chat","reply":"hi"}')
        self.assertTrue(result.ok)
        self.assertEqual(result.strategy, "as_is")
        self.assertEqual(result.value["reply"], "hi")

    def test_surrounding_prose_uses_extraction_tier(self):
        text = 'Sure! Here you go: {"intent":"chat","reply":"a {braced} reply"} Hope that helps.'
        result = decode_llm_json(text)
        self.assertTrue(result.ok)
        self.assertEqual(result.strategy, "first_object")
        self.assertEqual(result.value["reply"], "a {braced} reply")

    def test_trailing_comma_uses_repair_tier(self):
        text = '{"intent":"add_product","data":[{"name":"Rice","description":"5kg bag","measure":"kg"},]}'
        result = decode_llm_json(text)
        self.assertTrue(result.ok)
        self.assertEqual(result.strategy, "repaired")
        self.assertEqual(len(result.value["data"]), 1)

    def test_repair_leaves_commas_inside_strings(self):
        text = '{"intent":"add_product","data":[{"name":"Rice","description":"bag, ]5kg","measure":"kg"},]}'
        result = decode_llm_json(text)
        self.assertTrue(result.ok)
        self.assertEqual(result.strategy, "repaired")
        self.assertEqual(result.value["data"][0]["description"], "bag, ]5kg")
        self.assertEqual(
            repair_json_text('{"a": "x,}", "b": ["y, ]",\n ],}'),
            '{"a": "x,}", "b": ["y, ]"\n ]}',
        )

    def test_smart_and_single_quotes_repaired(self):
        self.assertEqual(
            decode_llm_json("{“intent”: “chat”, “reply”: “hi”}").value,
            {"intent": "chat", "reply": "hi"},
        )
        self.assertEqual(
            decode_llm_json("{'intent': 'chat', 'reply': 'hi'}").value,
            {"intent": "chat", "reply": "hi"},
        )

    def test_repair_keeps_apostrophes_in_double_quoted_json(self):
        self.assertEqual(
            repair_json_text('{"reply": "I\'m here",}'),
            '{"reply": "I\'m here"}',
        )

    def test_no_json_fails_without_raising(self):
        result = decode_llm_json("I'm sorry, I can't help with that.")
        self.assertFalse(result.ok)
        self.assertTrue(result.error)

    def test_empty_text(self):
        self.assertFalse(decode_llm_json("").ok)
        self.assertFalse(decode_llm_json("```json\n```").ok)

    def test_extract_first_object_unbalanced(self):
        self.assertIsNone(extract_first_object('{"intent": "chat"'))
        self.assertEqual(extract_first_object('x {"a": {"b": 1}} {"c": 2}'), '{"a": {"b": 1}}')

    def test_chain_is_extensible(self):
        def decode_yes(text):
            return DecodeResult(value={"intent": "chat", "reply": "yes"}) if text == "yes" else DecodeResult(error="no")

        strategies = DEFAULT_STRATEGIES + (("yes_word", decode_yes),)
        result = decode_llm_json("yes", strategies)
        self.assertTrue(result.ok)
        self.assertEqual(result.strategy, "yes_word")


if __name__ == "__main__":
    unittest.main()
