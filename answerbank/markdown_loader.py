"""
Seed content from a directory of markdown files.

Each ``*.md`` file is one item; the file stem is the id. Optional YAML
frontmatter supplies the display name and keywords::

    ---
    name: Billing FAQ
    keywords: [billing, invoice, payment]
    ---
    To pay your bill, open the billing page...

``keywords`` may also be a comma-separated string; ``patterns`` is accepted
as an older spelling of ``keywords``.
"""

from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

import yaml

from .types import dedupe, split_csv


@dataclass
class MarkdownEntry:
    """One parsed markdown file, ready to register."""
    id: str
    content: str
    name: Optional[str] = None
    keywords: list[str] = field(default_factory=list)


def _keywords(value) -> list[str]:
    if isinstance(value, str):
        return split_csv(value)
    if isinstance(value, list):
        return [str(v).strip() for v in value if v is not None and str(v).strip()]
    return []


def parse_markdown(text: str) -> tuple[str, dict]:
    """
    Split optional YAML frontmatter from the body.

    Returns:
        (content, frontmatter) tuple. Frontmatter empty if absent.

    Raises:
        ValueError: If the frontmatter is not valid YAML mapping
    """
    if text.startswith("---"):
        parts = text.split("---", 2)
        if len(parts) >= 3:
            try:
                frontmatter = yaml.safe_load(parts[1])
            except yaml.YAMLError as e:
                raise ValueError(f"Invalid frontmatter: {e}") from e
            if frontmatter is None:
                frontmatter = {}
            if not isinstance(frontmatter, dict):
                raise ValueError("Frontmatter must be a mapping")
            return parts[2].strip(), frontmatter

    return text.strip(), {}


def load_markdown_file(path: Path) -> MarkdownEntry:
    """
    Load one markdown file.

    Raises:
        FileNotFoundError: If the file doesn't exist
        ValueError: If the frontmatter is invalid or the body is empty
    """
    content, meta = parse_markdown(path.read_text(encoding="utf-8"))
    if not content:
        raise ValueError(f"{path.name} has no content")
    name = meta.get("name")
    keywords = _keywords(meta.get("keywords", meta.get("patterns")))
    return MarkdownEntry(
        id=path.stem,
        content=content,
        name=str(name) if name else None,
        keywords=dedupe(keywords),
    )


def list_markdown_files(directory: Path) -> list[Path]:
    """List ``*.md`` files in a directory, sorted by name.

    Skips hidden files and subdirectories.
    """
    if not directory.is_dir():
        raise NotADirectoryError(f"Not a directory: {directory}")
    return [
        p for p in sorted(directory.glob("*.md"))
        if p.is_file() and not p.name.startswith(".")
    ]
