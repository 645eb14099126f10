from __future__ import annotations

import logging

from .asset_service import AssetProvider, translation_file

logger = logging.getLogger(__name__)


class PresetLanguages:
    def __init__(self, provider: AssetProvider, preferred: str, fallback: str = "en"):
        self.provider = provider
        self.preferred = preferred
        self.fallback = fallback

    def has_translation(self, code: str) -> bool:
        return self.provider.read_bytes(translation_file(code)) is not None

    def preferred_language_code(self) -> str:
        for code in self._candidates(self.preferred):
            if self.has_translation(code):
                return code
        logger.info("No translation for %r; using %r", self.preferred, self.fallback)
        return self.fallback

    @staticmethod
    def _candidates(code: str) -> list[str]:
        # "pt-BR" falls back to "pt"
        output = [code]
        base, sep, _ = code.partition("-")
        if sep and base:
            output.append(base)
        return output
