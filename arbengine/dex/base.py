# arbengine/dex/base.py

from abc import ABC, abstractmethod
from typing import List

from arbengine.models import CallSpec, PoolQuote


class ProtocolAdapter(ABC):
    """
    One DEX family on one chain

    Adapters quote their configured pools for a probe size and build the
    router calls the trader batches. Buy acquires token_a with token_b,
    sell disposes of token_a for token_b.
    """

    def __init__(self, name: str, chain: str, router_address: str):
        self.name = name
        self.chain = chain
        self.router_address = router_address

    @abstractmethod
    def discover_pools(self, probe_amount: int) -> List[PoolQuote]:
        ...

    @abstractmethod
    def build_buy_call(
        self,
        token_a: str,
        token_b: str,
        amount_out: int,
        max_amount_in: int,
        recipient: str,
    ) -> CallSpec:
        ...

    @abstractmethod
    def build_sell_call(
        self,
        token_a: str,
        token_b: str,
        amount_in: int,
        min_amount_out: int,
        recipient: str,
    ) -> CallSpec:
        ...

    def __repr__(self) -> str:
        return f"{type(self).__name__}(name={self.name!r}, chain={self.chain!r})"
