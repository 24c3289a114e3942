"""
Generated content files served to the client under ``/generated``.

The lesson HTML and the interactive environment page are plain files so the
client can poll them; writes go through a temp file and ``os.replace`` so a
poll never observes a half-written page.
"""

from __future__ import annotations

import logging
import os
import re
import tempfile
from pathlib import Path
from typing import Optional

from shared.config import get_settings

logger = logging.getLogger(__name__)

LESSON_FILENAME = "lesson-content.html"
ENVIRONMENT_FILENAME = "interactive-environment.html"
TEMPLATES_DIR = Path(__file__).resolve().parent / "templates"
LESSON_TEMPLATE = TEMPLATES_DIR / "lesson-template.html"
ENVIRONMENT_TEMPLATE = TEMPLATES_DIR / "environment-template.html"

P5_CDN_URL = "https://cdnjs.cloudflare.com/ajax/libs/p5.js/1.7.0/p5.min.js"

ENVIRONMENT_PAGE = """<!DOCTYPE html>
<html lang="en">
<head>
    <meta charset="UTF-8">
    <meta name="viewport" content="width=device-width, initial-scale=1.0">
    <title>Interactive Environment</title>
    <script src="{cdn}"></script>
    <style>
        body {{
            margin: 0;
            padding: 20px;
            font-family: Arial, sans-serif;
            background: #f0f0f0;
        }}
        canvas {{
            border: 4px solid #333;
            background: white;
        }}
    </style>
</head>
<body>
    <h2>🎮 Interactive Visualization</h2>
    <div id="p5-container"></div>

    <script>
        {code}
    </script>
</body>
</html>"""


def strip_code_fences(code: str) -> str:
    """Remove a surrounding ```javascript (or bare ```) fence from generated code."""
    s = code.strip()
    if s.startswith("```"):
        s = re.sub(r"^```[a-zA-Z]*\r?\n?", "", s)
        s = re.sub(r"\r?\n?```$", "", s)
    return s


def render_environment_page(p5_code: str) -> str:
    return ENVIRONMENT_PAGE.format(cdn=P5_CDN_URL, code=p5_code)


class ContentStore:
    """Reads and writes the two generated content files."""

    def __init__(self, base_dir: Optional[str] = None) -> None:
        self.base_dir = Path(base_dir or get_settings().generated_dir)

    @property
    def lesson_path(self) -> Path:
        return self.base_dir / LESSON_FILENAME

    @property
    def environment_path(self) -> Path:
        return self.base_dir / ENVIRONMENT_FILENAME

    def ensure_initialized(self) -> None:
        """Create the directory and seed missing files from the templates."""
        self.base_dir.mkdir(parents=True, exist_ok=True)
        if not self.lesson_path.exists():
            self._write(self.lesson_path, LESSON_TEMPLATE.read_text(encoding="utf-8"))
        if not self.environment_path.exists():
            self._write(self.environment_path, ENVIRONMENT_TEMPLATE.read_text(encoding="utf-8"))

    def write_lesson(self, html: str) -> bool:
        return self._safe_write(self.lesson_path, html)

    def write_environment(self, p5_code: str) -> bool:
        return self._safe_write(self.environment_path, render_environment_page(strip_code_fences(p5_code)))

    def reset(self) -> None:
        """Overwrite both files with the placeholder templates.

        Raises OSError when a template cannot be read or a file cannot be written.
        """
        lesson_template = LESSON_TEMPLATE.read_text(encoding="utf-8")
        environment_template = ENVIRONMENT_TEMPLATE.read_text(encoding="utf-8")
        self.base_dir.mkdir(parents=True, exist_ok=True)
        self._write(self.lesson_path, lesson_template)
        self._write(self.environment_path, environment_template)
        logger.info("✅ Content reset to templates")

    def read_lesson(self) -> str:
        return self.lesson_path.read_text(encoding="utf-8")

    def read_environment(self) -> str:
        return self.environment_path.read_text(encoding="utf-8")

    def _safe_write(self, path: Path, content: str) -> bool:
        try:
            self.base_dir.mkdir(parents=True, exist_ok=True)
            self._write(path, content)
            logger.info(f"✅ Written content to {path.name}")
            return True
        except OSError as e:
            logger.error(f"❌ Failed to write {path.name}: {e}")
            return False

    @staticmethod
    def _write(path: Path, content: str) -> None:
        fd, tmp = tempfile.mkstemp(dir=path.parent, prefix=f".{path.name}.", suffix=".tmp")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as fh:
                fh.write(content)
            os.replace(tmp, path)
        except BaseException:
            if os.path.exists(tmp):
                os.unlink(tmp)
            raise


_content_store: Optional[ContentStore] = None


def get_content_store() -> ContentStore:
    global _content_store
    if _content_store is None:
        _content_store = ContentStore()
    return _content_store
