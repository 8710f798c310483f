import os
import tempfile
import unittest
from pathlib import Path
from unittest import mock

from config.settings import load_settings


class LoadSettingsTestCase(unittest.TestCase):
    def setUp(self) -> None:
        self.tmp = tempfile.TemporaryDirectory()
        self.addCleanup(self.tmp.cleanup)
        self.env_file = Path(self.tmp.name) / ".env"

    def test_requires_at_least_one_key(self) -> None:
        with mock.patch.dict(os.environ, {}, clear=True):
            with self.assertRaises(RuntimeError):
                load_settings(self.env_file)

    def test_defaults(self) -> None:
        with mock.patch.dict(os.environ, {"OPENAI_API_KEY": "sk-test"}, clear=True):
            settings = load_settings(self.env_file)
        self.assertIsNone(settings.gemini_api_key)
        self.assertEqual(settings.openai_model, "gpt-4o-mini")
        self.assertEqual(settings.generation_timeout, 30.0)
        self.assertEqual(settings.generation_max_attempts, 2)
        self.assertEqual(settings.api_port, 8765)
        self.assertFalse(settings.keyword_fallback)

    def test_invalid_numbers_fall_back_to_defaults(self) -> None:
        env = {
            "GEMINI_API_KEY": "g-key",
            "GENERATION_TIMEOUT": "soon",
            "GENERATION_MAX_ATTEMPTS": "0",
            "API_PORT": "9000",
            "KEYWORD_FALLBACK": "yes",
        }
        with mock.patch.dict(os.environ, env, clear=True):
            settings = load_settings(self.env_file)
        self.assertEqual(settings.generation_timeout, 30.0)
        self.assertEqual(settings.generation_max_attempts, 2)
        self.assertEqual(settings.api_port, 9000)
        self.assertTrue(settings.keyword_fallback)

    def test_dotenv_never_overrides_environment(self) -> None:
        self.env_file.write_text("GEMINI_API_KEY=from-file\nGEMINI_MODEL=gemini-pro\n# comment\n", encoding="utf-8")
        with mock.patch.dict(os.environ, {"GEMINI_API_KEY": "from-env"}, clear=True):
            settings = load_settings(self.env_file)
        self.assertEqual(settings.gemini_api_key, "from-env")
        self.assertEqual(settings.gemini_model, "gemini-pro")


if __name__ == "__main__":
    unittest.main()
