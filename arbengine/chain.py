# arbengine/chain.py
"""
Chain access layer
One web3 connection per network, transaction signing and receipt handling
"""

import time
import logging
from typing import Any, Dict, Optional, Tuple

from web3 import Web3
from web3.middleware import ExtraDataToPOAMiddleware

from arbengine.config import (
    RPC_ENDPOINTS, CHAIN_IDS, NONCE_BLOCK_TAG,
    MAX_GAS_PRICE_GWEI, MAX_RPC_LATENCY,
)

logger = logging.getLogger(__name__)


class ChainUnavailable(ConnectionError):
    """The RPC endpoint for a network cannot be reached"""


class TransactionReverted(RuntimeError):
    """A mined transaction reported status != 1"""

    def __init__(self, tx_hash: str, receipt: Any = None):
        super().__init__(f"Transaction {tx_hash} reverted")
        self.tx_hash = tx_hash
        self.receipt = receipt


# Offline instance used only for ABI encoding; it never issues requests
_CODEC_W3 = Web3()


def codec(abi: list, address: Optional[str] = None):
    """Contract object for encoding/decoding call data without a connection"""
    if address is None:
        return _CODEC_W3.eth.contract(abi=abi)
    return _CODEC_W3.eth.contract(address=Web3.to_checksum_address(address), abi=abi)


def encode_call(abi: list, fn_name: str, *args) -> bytes:
    """ABI-encode a function call"""
    return Web3.to_bytes(hexstr=codec(abi).encode_abi(fn_name, args=list(args)))


# =============================================================================
# CHAIN CLIENT
# =============================================================================

class ChainClient:
    """
    Read and write access to one network

    Reads go through eth_call; writes are signed locally with the configured
    key and sent raw.
    """

    def __init__(
        self,
        w3: Web3,
        private_key: Optional[str] = None,
        chain_id: Optional[int] = None,
        name: str = "",
    ):
        self.w3 = w3
        self.name = name
        self._chain_id = chain_id
        self.account = w3.eth.account.from_key(private_key) if private_key else None

    @property
    def address(self) -> Optional[str]:
        return self.account.address if self.account else None

    @property
    def chain_id(self) -> int:
        if self._chain_id is None:
            self._chain_id = self.w3.eth.chain_id
        return self._chain_id

    def ensure_connected(self) -> None:
        if not self.w3.is_connected():
            raise ChainUnavailable(f"RPC not connected: {self.name or 'unknown chain'}")

    def contract(self, address: str, abi: list):
        return self.w3.eth.contract(address=Web3.to_checksum_address(address), abi=abi)

    def call(self, address: str, abi: list, fn_name: str, *args) -> Any:
        """Read-only contract call"""
        return self.contract(address, abi).functions[fn_name](*args).call()

    def get_nonce(self) -> int:
        return self.w3.eth.get_transaction_count(self.address, NONCE_BLOCK_TAG)

    def get_gas_price(self) -> int:
        """Network gas price, capped at MAX_GAS_PRICE_GWEI"""
        cap = Web3.to_wei(MAX_GAS_PRICE_GWEI, "gwei")
        current = self.w3.eth.gas_price
        if current > cap:
            logger.warning(
                f"Gas price {current / 10**9:.1f} gwei exceeds max {MAX_GAS_PRICE_GWEI}"
            )
            return cap
        return current

    def send_transaction(self, to: str, data: bytes, gas: int) -> str:
        """Sign and broadcast a contract call; returns the tx hash"""
        if self.account is None:
            raise RuntimeError("No private key configured for signing")

        tx = {
            "from": self.address,
            "to": Web3.to_checksum_address(to),
            "data": Web3.to_hex(data),
            "value": 0,
            "nonce": self.get_nonce(),
            "gas": gas,
            "gasPrice": self.get_gas_price(),
            "chainId": self.chain_id,
        }

        signed = self.account.sign_transaction(tx)
        tx_hash = self.w3.eth.send_raw_transaction(signed.raw_transaction)
        return Web3.to_hex(tx_hash)

    def wait_for_receipt(self, tx_hash: str, timeout: float) -> Any:
        receipt = self.w3.eth.wait_for_transaction_receipt(tx_hash, timeout=timeout)
        if receipt["status"] != 1:
            raise TransactionReverted(tx_hash, receipt)
        return receipt

    def check_health(self) -> tuple:
        """
        Check RPC health
        Returns (is_healthy: bool, status_message: str)
        """
        try:
            start = time.time()
            latest = self.w3.eth.block_number
            latency = time.time() - start

            if latency > MAX_RPC_LATENCY:
                return False, f"High latency {latency:.2f}s"

            return True, f"OK (latency={latency:.2f}s, block={latest})"

        except Exception as e:
            return False, str(e)


# =============================================================================
# PER-NETWORK CLIENTS
# =============================================================================

_clients: Dict[Tuple[str, Optional[str]], ChainClient] = {}


def get_client(chain: str = "bsc", private_key: Optional[str] = None) -> ChainClient:
    """Cached client per network and signing key"""
    key = (chain, private_key)
    if key not in _clients:
        rpc_url = RPC_ENDPOINTS.get(chain)
        if not rpc_url:
            raise ValueError(f"Unknown chain: {chain}")

        w3 = Web3(Web3.HTTPProvider(rpc_url))
        w3.middleware_onion.inject(ExtraDataToPOAMiddleware, layer=0)
        _clients[key] = ChainClient(
            w3,
            private_key=private_key,
            chain_id=CHAIN_IDS.get(chain),
            name=chain,
        )
    return _clients[key]
