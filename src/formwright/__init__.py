"""
formwright - Form templates with chip pre-fill and multi-party signing.

Compiles a markdown-like form DSL into a typed document model, renders and
pre-fills it, validates submissions against it, and runs the signing
workflow of form instances.
"""

from __future__ import annotations

import re
from importlib.metadata import PackageNotFoundError
from importlib.metadata import version as _metadata_version
from pathlib import Path as _Path

# Re-export commonly used types for convenience
from .core import ir
from .core.errors import FormwrightError, LinkError, TemplateInvalidError, TemplateIssue
from .core.parser import CompileResult, compile_template


def _get_version() -> str:
    """Get version from pyproject.toml (editable) or importlib.metadata (installed)."""
    pyproject = _Path(__file__).parent.parent.parent / "pyproject.toml"
    if pyproject.exists():
        content = pyproject.read_text()
        if match := re.search(r'^version\s*=\s*["\']([^"\']+)["\']', content, re.MULTILINE):
            return match.group(1)

    try:
        return _metadata_version("formwright")
    except PackageNotFoundError:
        return "0.0.0"


__version__ = _get_version()

__all__ = [
    "__version__",
    "ir",
    "FormwrightError",
    "LinkError",
    "TemplateInvalidError",
    "TemplateIssue",
    "CompileResult",
    "compile_template",
]
