from abc import ABC, abstractmethod
from typing import List


class EmbeddingClient(ABC):
    """
    Converts texts into vectors for the ``embedding`` index field.

    Implementations must return exactly one vector per input text, in
    input order.
    """

    @abstractmethod
    async def embed(self, texts: List[str]) -> List[List[float]]:
        """
        Embed a batch of texts.

        Args:
            texts: Texts to embed

        Returns:
            One vector per input text, in the same order
        """
        pass

    async def close(self) -> None:
        pass
