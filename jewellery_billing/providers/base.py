from abc import ABC, abstractmethod


class SpotPriceProvider(ABC):
    provider_name: str

    @abstractmethod
    def fetch_latest_inr_per_oz(self, symbols: list[str]) -> dict[str, float]:
        """Returns {symbol: price_inr_per_troy_oz}."""
        raise NotImplementedError
