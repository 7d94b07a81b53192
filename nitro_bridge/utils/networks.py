"""
Directory of Arbitrum chains and the contracts that connect them to their
parent chain. `NetworkRegistry` is safe to share between threads.
"""

import logging
import threading
from dataclasses import dataclass, field
from typing import Dict, List, Optional

from eth_typing import ChecksumAddress
from eth_utils.address import to_checksum_address

from nitro_bridge.nitro_stack.custom_errors import NitroStackConfigError

from .config import DEFAULT_RETRYABLE_LIFETIME_SECONDS

logger = logging.getLogger(__name__)


def _checksum_outboxes(outboxes: Dict[str, int]) -> Dict[ChecksumAddress, int]:
    return {to_checksum_address(address): batch for address, batch in outboxes.items()}


@dataclass(frozen=True)
class EthBridge:
    bridge: ChecksumAddress
    inbox: ChecksumAddress
    sequencer_inbox: ChecksumAddress
    outbox: ChecksumAddress
    rollup: ChecksumAddress
    # outbox address -> first batch number it serves
    classic_outboxes: Dict[ChecksumAddress, int] = field(default_factory=dict)

    def __post_init__(self) -> None:
        for name in ("bridge", "inbox", "sequencer_inbox", "outbox", "rollup"):
            object.__setattr__(self, name, to_checksum_address(getattr(self, name)))

        object.__setattr__(
            self, "classic_outboxes", _checksum_outboxes(self.classic_outboxes)
        )


@dataclass(frozen=True)
class TokenBridge:
    parent_gateway_router: ChecksumAddress
    child_gateway_router: ChecksumAddress
    parent_erc20_gateway: ChecksumAddress
    child_erc20_gateway: ChecksumAddress
    parent_custom_gateway: ChecksumAddress
    child_custom_gateway: ChecksumAddress
    parent_weth_gateway: ChecksumAddress
    child_weth_gateway: ChecksumAddress
    parent_weth: ChecksumAddress
    child_weth: ChecksumAddress

    def __post_init__(self) -> None:
        for name in self.__dataclass_fields__:
            object.__setattr__(self, name, to_checksum_address(getattr(self, name)))


@dataclass(frozen=True)
class Teleporter:
    l1_teleporter: ChecksumAddress
    l2_forwarder_factory: ChecksumAddress
    # relayed forwarders are clones of it, asked from the factory when unset
    l2_forwarder_implementation: Optional[ChecksumAddress] = None

    def __post_init__(self) -> None:
        for name in self.__dataclass_fields__:
            value = getattr(self, name)
            if value is not None:
                object.__setattr__(self, name, to_checksum_address(value))


@dataclass(frozen=True)
class ArbitrumNetwork:
    chain_id: int
    name: str
    parent_chain_id: int
    eth_bridge: EthBridge
    confirm_period_blocks: int
    token_bridge: Optional[TokenBridge] = None
    teleporter: Optional[Teleporter] = None
    retryable_lifetime_seconds: int = DEFAULT_RETRYABLE_LIFETIME_SECONDS
    is_custom: bool = True
    is_bold: bool = False

    def __post_init__(self) -> None:
        if self.chain_id <= 0:
            raise NitroStackConfigError(f"Invalid chain id `{self.chain_id}`")

        if self.chain_id == self.parent_chain_id:
            raise NitroStackConfigError(
                f"Network `{self.name}` can't be its own parent chain"
            )


class NetworkRegistry:
    """
    Chain id keyed directory of `ArbitrumNetwork`s. Entries are only ever
    added through `register`.

    Parameters
    ----------
    `networks` : List[ArbitrumNetwork], optional
        Networks to register up front.
    """

    def __init__(self, networks: Optional[List[ArbitrumNetwork]] = None) -> None:
        self._lock = threading.RLock()
        self._networks: Dict[int, ArbitrumNetwork] = {}

        for network in networks or []:
            self.register(network)

    def register(self, network: ArbitrumNetwork, force: bool = False) -> ArbitrumNetwork:
        """
        Add a network. Raises `NitroStackConfigError` when the chain id is
        already registered unless `force` is set.
        """
        with self._lock:
            if network.chain_id in self._networks and not force:
                raise NitroStackConfigError(
                    f"Network {network.chain_id} already included"
                )

            self._networks[network.chain_id] = network
            logger.debug("Registered network %s (%s)", network.name, network.chain_id)

            return network

    def get(self, chain_id: int) -> ArbitrumNetwork:
        with self._lock:
            network = self._networks.get(chain_id)

        if network is None:
            raise NitroStackConfigError(f"Unrecognized network {chain_id}.")

        return network

    def __contains__(self, chain_id: object) -> bool:
        with self._lock:
            return chain_id in self._networks

    def all(self) -> List[ArbitrumNetwork]:
        with self._lock:
            return list(self._networks.values())

    def children_of(self, chain_id: int) -> List[ArbitrumNetwork]:
        with self._lock:
            return [n for n in self._networks.values() if n.parent_chain_id == chain_id]

    def is_parent_chain(self, chain_id: int) -> bool:
        return len(self.children_of(chain_id)) > 0

    def get_teleporter(self, network: ArbitrumNetwork) -> Teleporter:
        if network.teleporter is None:
            raise NitroStackConfigError(
                f"Network {network.chain_id} does not have teleporter contracts"
            )

        return network.teleporter

    def get_token_bridge(self, network: ArbitrumNetwork) -> TokenBridge:
        if network.token_bridge is None:
            raise NitroStackConfigError(
                f"Network {network.chain_id} does not have a token bridge"
            )

        return network.token_bridge


ARBITRUM_ONE = ArbitrumNetwork(
    chain_id=42161,
    name="Arbitrum One",
    parent_chain_id=1,
    confirm_period_blocks=45818,
    is_custom=False,
    eth_bridge=EthBridge(
        bridge="0x8315177aB297bA92A06054cE80a67Ed4DBd7ed3a",
        inbox="0x4Dbd4fc535Ac27206064B68FfCf827b0A60BAB3f",
        sequencer_inbox="0x1c479675ad559DC151F6Ec7ed3FbF8ceE79582B6",
        outbox="0x0B9857ae2D4A3DBe74ffE1d7DF045bb7F96E4840",
        rollup="0x5eF0D09d1E6204141B4d37530808eD19f60FBa35",
        classic_outboxes={
            "0x667e23ABd27E623c11d4CC00ca3EC4d0bD63337a": 0,
            "0x760723CD2e632826c38Fef8CD438A4CC7E7E1A40": 30,
        },
    ),
    token_bridge=TokenBridge(
        parent_gateway_router="0x72Ce9c846789fdB6fC1f34aC4AD25Dd9ef7031ef",
        child_gateway_router="0x5288c571Fd7aD117beA99bF60FE0846C4E84F933",
        parent_erc20_gateway="0xa3A7B6F88361F48403514059F1F16C8E78d60EeC",
        child_erc20_gateway="0x09e9222E96E7B4AE2a407B98d48e330053351EEe",
        parent_custom_gateway="0xcEe284F754E854890e311e3280b767F80797180d",
        child_custom_gateway="0x096760F208390250649E3e8763348E783AEF5562",
        parent_weth_gateway="0xd92023E9d9911199a6711321D1277285e6d4e2db",
        child_weth_gateway="0x6c411aD3E74De3E7Bd422b94A27770f5B86C623B",
        parent_weth="0xC02aaA39b223FE8D0A0e5C4F27eAD9083C756Cc2",
        child_weth="0x82aF49447D8a07e3bd95BD0d56f35241523fBab1",
    ),
    teleporter=Teleporter(
        l1_teleporter="0xCBd9c6e310D6AaDeF9F025f716284162F0158992",
        l2_forwarder_factory="0x791d2AbC6c3A459E13B9AdF54Fb5e97B7Af38f87",
    ),
)

ARBITRUM_NOVA = ArbitrumNetwork(
    chain_id=42170,
    name="Arbitrum Nova",
    parent_chain_id=1,
    confirm_period_blocks=45818,
    is_custom=False,
    eth_bridge=EthBridge(
        bridge="0xC1Ebd02f738644983b6C4B2d440b8e77DdE276Bd",
        inbox="0xc4448b71118c9071Bcb9734A0EAc55D18A153949",
        sequencer_inbox="0x211E1c4c7f1bF5351Ac850Ed10FD68CFfCF6c21b",
        outbox="0xD4B80C3D7240325D18E645B49e6535A3Bf95cc58",
        rollup="0xFb209827c58283535b744575e11953DCC4bEAD88",
    ),
    token_bridge=TokenBridge(
        parent_gateway_router="0xC840838Bc438d73C16c2f8b22D2Ce3669963cD48",
        child_gateway_router="0x21903d3F8176b1a0c17E953Cd896610Be9fFDFa8",
        parent_erc20_gateway="0xB2535b988dcE19f9D71dfB22dB6da744aCac21bf",
        child_erc20_gateway="0xcF9bAb7e53DDe48A6DC4f286CB14e05298799257",
        parent_custom_gateway="0x23122da8C581AA7E0d07A36Ff1f16F799650232f",
        child_custom_gateway="0xbf544970E6BD77b21C6492C281AB60d0770451F4",
        parent_weth_gateway="0xE4E2121b479017955Be0b175305B35f312330BaE",
        child_weth_gateway="0x7626841cB6113412F9c88D3ADC720C9FAC88D9eD",
        parent_weth="0xC02aaA39b223FE8D0A0e5C4F27eAD9083C756Cc2",
        child_weth="0x722E8BdD2ce80A4422E880164f2079488e115365",
    ),
)

ARBITRUM_SEPOLIA = ArbitrumNetwork(
    chain_id=421614,
    name="Arbitrum Rollup Sepolia Testnet",
    parent_chain_id=11155111,
    confirm_period_blocks=20,
    is_custom=False,
    eth_bridge=EthBridge(
        bridge="0x38f918D0E9F1b721EDaA41302E399fa1B79333a9",
        inbox="0xaAe29B0366299461418F5324a79Afc425BE5ae21",
        sequencer_inbox="0x6c97864CE4bEf387dE0b3310A44230f7E3F1be0D",
        outbox="0x65f07C7D521164a4d5DaC6eB8Fac8DA067A3B78F",
        rollup="0xd80810638dbDF9081b72C1B33c65375e807281C8",
    ),
    token_bridge=TokenBridge(
        parent_gateway_router="0xcE18836b233C83325Cc8848CA4487e94C6288264",
        child_gateway_router="0x9fDD1C4E4AA24EEc1d913FABea925594a20d43C7",
        parent_erc20_gateway="0x902b3E5f8F19571859F4AB1003B960a5dF693aFF",
        child_erc20_gateway="0x6e244cD02BBB8a6dbd7F626f05B2ef82151Ab502",
        parent_custom_gateway="0xba2F7B6eAe1F9d174199C5E4867b563E0eaC40F3",
        child_custom_gateway="0x8Ca1e1AC0f260BC4dA7Dd60aCA6CA66208E642C5",
        parent_weth_gateway="0xA8aD8d7e13cbf556eE75CB0324c13535d8100e1E",
        child_weth_gateway="0xCFB1f08A4852699a979909e22c30263ca249556D",
        parent_weth="0x7b79995e5f793A07Bc00c21412e50Ecae098E7f9",
        child_weth="0x980B62Da83eFf3D4576C647993b0c1D7faf17c73",
    ),
    teleporter=Teleporter(
        l1_teleporter="0x9E86BbF020594D7FFe05bF32EEDE5b973579A968",
        l2_forwarder_factory="0x88feBaFBb4E36A4E7E8874E4c9Fd73A9D59C2E7c",
    ),
)


def default_registry() -> NetworkRegistry:
    return NetworkRegistry([ARBITRUM_ONE, ARBITRUM_NOVA, ARBITRUM_SEPOLIA])
