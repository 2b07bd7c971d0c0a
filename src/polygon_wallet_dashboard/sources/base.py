"""Base source adapter class."""

from abc import ABC, abstractmethod
from typing import Any, ClassVar

import httpx

from polygon_wallet_dashboard.config import Settings
from polygon_wallet_dashboard.core.models import AdapterResult


class SourceAdapter(ABC):
    """
    Abstract base class for source adapters.

    An adapter speaks one upstream's wire shape and returns normalized entities.
    It raises a ``DashboardError`` subclass when the upstream cannot be queried at
    all; individual malformed records are reported as ``Skipped`` instead.

    Attributes
    ----------
    name : str
        Adapter identifier used in logs and domain states (must be set in subclass)

    """

    name: ClassVar[str] = ""

    def __init__(self, settings: Settings, client: httpx.AsyncClient) -> None:
        if not self.name:
            msg = f"{self.__class__.__name__} must define 'name' attribute"
            raise ValueError(msg)
        self.settings = settings
        self.client = client

    @abstractmethod
    async def fetch(self, address: str, **kwargs: Any) -> AdapterResult:
        """
        Fetch and normalize data for ``address``.

        Parameters
        ----------
        address : str
            Validated wallet address

        Returns
        -------
        AdapterResult
            Normalized items plus skipped records

        """
        ...
