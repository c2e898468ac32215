# PATH: tests/conftest.py
"""
Pytest configuration and fixtures for arbengine tests.
"""

import pytest
from web3 import Web3

from arbengine.chain import ChainUnavailable

WALLET = Web3.to_checksum_address("0x90f8bf6a479f320ead074411a4b0e7944ea8c9c1")


def pytest_configure(config):
    """Configure pytest."""
    config.addinivalue_line(
        "markers", "slow: marks tests as slow (deselect with '-m \"not slow\"')"
    )


class FakeChain:
    """
    Stand-in for ChainClient that records every read and write.

    responses maps a contract function name to a value, a callable
    (address, *args) -> value, or an exception to raise.
    """

    def __init__(self, address=WALLET, connected=True):
        self.address = address
        self.connected = connected
        self.responses = {}
        self.calls = []
        self.sent = []
        self.waited = []
        self.on_wait = None
        self.wait_error = None
        self.receipt = {"status": 1, "blockNumber": 123, "gasUsed": 456_000}

    def ensure_connected(self):
        if not self.connected:
            raise ChainUnavailable("RPC not connected: fake")

    def call(self, address, abi, fn_name, *args):
        self.calls.append((address, fn_name, args))
        response = self.responses.get(fn_name)
        if isinstance(response, Exception):
            raise response
        if callable(response):
            return response(address, *args)
        return response

    def send_transaction(self, to, data, gas):
        self.sent.append((to, data, gas))
        return "0x" + f"{len(self.sent):064x}"

    def wait_for_receipt(self, tx_hash, timeout):
        self.waited.append(tx_hash)
        if self.on_wait is not None:
            self.on_wait(tx_hash)
        if self.wait_error is not None:
            raise self.wait_error
        return self.receipt


@pytest.fixture
def fake_chain():
    return FakeChain()
