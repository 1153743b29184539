import unittest

from backend.services.profile_detector import PROFILE_KEYWORDS, is_profile_query


class ProfileDetectorTests(unittest.TestCase):
    def test_detects_who_am_i_in_any_case(self) -> None:
        self.assertTrue(is_profile_query("Who am I?"))
        self.assertTrue(is_profile_query("who am i"))
        self.assertTrue(is_profile_query("WHO AM I"))

    def test_detects_phrase_inside_longer_text(self) -> None:
        self.assertTrue(is_profile_query("Can you tell me about myself?"))
        self.assertTrue(is_profile_query("Describe my personality please"))
        self.assertTrue(is_profile_query("Honestly, what am I like to talk to?"))

    def test_every_canonical_phrase_matches(self) -> None:
        for phrase in PROFILE_KEYWORDS:
            with self.subTest(phrase=phrase):
                self.assertTrue(is_profile_query(phrase.upper()))
                self.assertTrue(is_profile_query(f"hey, {phrase.title()}!"))

    def test_tolerates_extra_whitespace(self) -> None:
        self.assertTrue(is_profile_query("  who   am\ti  "))
        self.assertTrue(is_profile_query("what kind of\nperson am i"))

    def test_unrelated_text_is_not_a_profile_query(self) -> None:
        self.assertFalse(is_profile_query("Hello, how are you?"))
        self.assertFalse(is_profile_query("What is the weather?"))
        self.assertFalse(is_profile_query("Tell me a joke"))
        self.assertFalse(is_profile_query("describe the moon"))

    def test_empty_input(self) -> None:
        self.assertFalse(is_profile_query(""))
        self.assertFalse(is_profile_query("   "))
        self.assertFalse(is_profile_query(None))


if __name__ == "__main__":
    unittest.main()
