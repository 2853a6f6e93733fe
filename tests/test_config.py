from __future__ import annotations

import tempfile
import unittest
from pathlib import Path

from codehelper.config import ConfigError, ensure_data_directories, load_config


class LoadConfigTests(unittest.TestCase):
    def test_loads_config_and_resolves_paths(self) -> None:
        with tempfile.TemporaryDirectory() as tmpdir:
            root = Path(tmpdir)
            config_path = root / "codehelper.yaml"
            config_path.write_text(
                "\n".join(
                    [
                        "name: helper",
                        "display_name: Helper",
                        "llm_base_url: http://localhost:11434/v1",
                        f"data_dir: {root / 'data'}",
                    ]
                )
                + "\n",
                encoding="utf-8",
            )
            config = load_config(config_path)
            ensure_data_directories(config)

            self.assertEqual(config.name, "helper")
            self.assertEqual(config.llm_model, "gpt-4o")
            self.assertEqual(config.llm_base_url, "http://localhost:11434/v1")
            self.assertEqual(config.paths.db_path, root / "data" / "memory.db")
            self.assertTrue(config.paths.secrets_dir.is_dir())

    def test_missing_keys_raise(self) -> None:
        with tempfile.TemporaryDirectory() as tmpdir:
            config_path = Path(tmpdir) / "codehelper.yaml"
            config_path.write_text("name: helper\n", encoding="utf-8")
            with self.assertRaises(ConfigError):
                load_config(config_path)

    def test_non_mapping_and_missing_file_raise(self) -> None:
        with tempfile.TemporaryDirectory() as tmpdir:
            config_path = Path(tmpdir) / "codehelper.yaml"
            with self.assertRaises(ConfigError):
                load_config(config_path)
            config_path.write_text("- just\n- a list\n", encoding="utf-8")
            with self.assertRaises(ConfigError):
                load_config(config_path)

    def test_bundled_config_is_valid(self) -> None:
        config = load_config(Path(__file__).resolve().parent.parent / "config" / "codehelper.yaml")
        self.assertEqual(config.display_name, "Code Helper Bot")
        self.assertIsNone(config.llm_base_url)


if __name__ == "__main__":
    unittest.main()
