"""Deterministic in-process pseudo-embedding.

WARNING: this is a placeholder. Vectors are derived from UTF-16 code units and
a rolling word hash, so equal texts map to equal vectors but the geometry
carries no semantic meaning. Similarity rankings built on it are not
meaningful. Replace the engine (EMBED_ENGINE) with a real embedding model
before relying on search quality.
"""

import math
import re

from shared.clients.embed.EmbedClientInterface import EmbedClientInterface
from shared.helper.HelperConfig import HelperConfig


class EmbedClientLocal(EmbedClientInterface):
    def __init__(self, helper_config: HelperConfig):
        super().__init__(helper_config=helper_config)
        self._dimension = int(helper_config.get_number_val("EMBED_LOCAL_DIMENSION", default=384, min_val=1))

    def _get_engine_name(self) -> str:
        return "Local"

    def get_dimension(self) -> int:
        return self._dimension

    async def embed_documents(self, texts: list[str]) -> list[list[float]]:
        return [self.generate_embedding(text) for text in texts]

    def generate_embedding(self, text: str) -> list[float]:
        words = [self.code_units(word) for word in re.split(r"\s+", text.lower())]
        embedding = [0.0] * self._dimension

        hashes = [self._hash_units(units) for units in words]
        for i in range(self._dimension):
            value = 0.0
            for units, word_hash in zip(words, hashes):
                position = (word_hash + i) % self._dimension
                char_code = units[i % len(units)] if units else 0
                value += math.sin(char_code * position) * 0.1
            embedding[i] = math.tanh(value / len(words))

        return embedding

    @staticmethod
    def code_units(word: str) -> list[int]:
        """UTF-16 code units of word. Characters outside the BMP count as two surrogate units."""
        encoded = word.encode("utf-16-le", errors="surrogatepass")
        return [int.from_bytes(encoded[i:i + 2], "little") for i in range(0, len(encoded), 2)]

    @classmethod
    def hash_string(cls, word: str) -> int:
        """32-bit signed rolling hash (h * 31 + c) over UTF-16 code units, absolute value of the result."""
        return cls._hash_units(cls.code_units(word))

    @staticmethod
    def _hash_units(units: list[int]) -> int:
        word_hash = 0
        for unit in units:
            word_hash = (word_hash * 31 + unit) & 0xFFFFFFFF
        if word_hash >= 0x80000000:
            word_hash -= 0x100000000
        return abs(word_hash)
