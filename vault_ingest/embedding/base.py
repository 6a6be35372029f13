from abc import ABC, abstractmethod

import numpy as np


class BaseEmbeddingProvider(ABC):
    """Contract for text embedding providers.

    Providers run on the device (or against a server the user runs locally);
    document text handed to ``embed`` must never reach a third party.
    """

    @property
    @abstractmethod
    def dimensions(self) -> int:
        """Length of every vector returned by :meth:`embed`."""

    @abstractmethod
    def embed(self, text: str) -> np.ndarray:
        """Return a float32 vector of length :attr:`dimensions`.

        Raises:
            EmbeddingError: on any failure.
        """
