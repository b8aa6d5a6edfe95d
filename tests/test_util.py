"""
Tests for shared helpers.
"""

import hashlib
import json

from regionmap.util import format_code_list, sha256_file, write_json


class TestUtil:
    def test_code_list_truncates(self):
        assert format_code_list(["a", "b"]) == "a, b"
        values = [f"r{idx}" for idx in range(15)]
        assert format_code_list(values).endswith("r11, ... (+3 more)")

    def test_write_json_creates_parents(self, tmp_path):
        path = tmp_path / "deep" / "out.json"
        write_json(path, {"b": 1, "a": "Москва"})
        text = path.read_text(encoding="utf-8")
        assert json.loads(text) == {"a": "Москва", "b": 1}
        assert text.endswith("\n")
        assert "Москва" in text

    def test_sha256_matches_hashlib(self, tmp_path):
        path = tmp_path / "data.bin"
        path.write_bytes(b"x" * 5000)
        assert sha256_file(path, chunk_size=1024) == hashlib.sha256(b"x" * 5000).hexdigest()
