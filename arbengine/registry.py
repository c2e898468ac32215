# arbengine/registry.py

from typing import Iterator, List

from arbengine.dex.base import ProtocolAdapter


class ProtocolRegistry:
    """Active protocol adapters, in registration order"""

    def __init__(self):
        self.protocols: List[ProtocolAdapter] = []

    def register(self, protocol: ProtocolAdapter) -> None:
        self.protocols.append(protocol)

    def get_all(self) -> List[ProtocolAdapter]:
        return list(self.protocols)

    def __len__(self) -> int:
        return len(self.protocols)

    def __iter__(self) -> Iterator[ProtocolAdapter]:
        return iter(self.protocols)
