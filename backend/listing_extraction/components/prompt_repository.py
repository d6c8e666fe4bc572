"""
File-backed prompt repository.

System prompts live next to the package as ``prompts/<name>.system`` files.
"""

from __future__ import annotations

from functools import lru_cache
from pathlib import Path
from typing import Optional

_DEFAULT_ROOT = Path(__file__).resolve().parents[1] / "prompts"


class PromptRepository:
    def __init__(self, prompts_root: Optional[Path] = None):
        self.prompts_root = prompts_root or _DEFAULT_ROOT

    def get_system_prompt(self, name: str) -> str:
        path = self.prompts_root / f"{name}.system"
        return path.read_text(encoding="utf-8").strip()


@lru_cache()
def get_system_prompt(name: str) -> str:
    """Cached lookup in the default prompt directory"""
    return PromptRepository().get_system_prompt(name)
