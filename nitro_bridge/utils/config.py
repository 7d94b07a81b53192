import os
from enum import StrEnum
from typing import Final

from eth_typing import ChecksumAddress
from eth_utils.address import to_checksum_address


class ENV(StrEnum):
    PRIVATE_KEY = "PRIVATE_KEY"
    PARENT_RPC_URL = "PARENT_RPC_URL"
    CHILD_RPC_URL = "CHILD_RPC_URL"
    GRANDCHILD_RPC_URL = "GRANDCHILD_RPC_URL"


def _address(address: str) -> ChecksumAddress:
    return to_checksum_address(address)


# GAS ESTIMATE

MULTIPLIER = 1.3
BUFFER = 20_000

# retryable ticket estimation defaults (percent increase)
DEFAULT_SUBMISSION_FEE_PERCENT_INCREASE = 300
DEFAULT_GAS_PRICE_PERCENT_INCREASE = 500
DEFAULT_GAS_LIMIT_PERCENT_INCREASE = 0

# deposit assumed by NodeInterface.estimateRetryableTicket on top of l2CallValue
ESTIMATION_SENDER_DEPOSIT = 10**18

# teleportation defaults
TELEPORT_GAS_LIMIT_PERCENT_INCREASE = 100
TELEPORT_GAS_PRICE_PERCENT_INCREASE = 500
TELEPORT_FORWARDER_FACTORY_GAS_LIMIT = 1_000_000
TELEPORT_RELAYER_PAYMENT_PERCENT_INCREASE = 30
TELEPORT_RELAYED_FORWARD_GAS_LIMIT = 1_000_000


# POLLING

# 15 minutes
DEFAULT_WAIT_TIMEOUT = 15 * 60
DEFAULT_POLL_INTERVAL = 4
OUTBOX_ENTRY_RETRY_DELAY = 0.5
# 7 days
DEFAULT_RETRYABLE_LIFETIME_SECONDS = 7 * 24 * 60 * 60
REDEEM_SCAN_INITIAL_INCREMENT = 1000
REDEEM_SCAN_TARGET_SECONDS = 24 * 60 * 60


# NITRO CONFIG

ADDRESS_ALIAS_OFFSET: Final[int] = 0x1111000000000000000000000000000000001111

# first parent block of Arbitrum One after the nitro migration
ARB1_NITRO_GENESIS_L1_BLOCK = 15447158

NODE_INTERFACE_ADDRESS: Final = _address("0x00000000000000000000000000000000000000C8")
ARB_RETRYABLE_TX_ADDRESS: Final = _address("0x000000000000000000000000000000000000006E")
ARB_SYS_ADDRESS: Final = _address("0x0000000000000000000000000000000000000064")

_ABI_DIR = os.path.join(os.path.dirname(os.path.dirname(__file__)), "nitro_stack", "ABI")

ABI_DELAYED_INBOX = os.path.join(_ABI_DIR, "delayed_inbox.json")
ABI_ARB_BRIDGE = os.path.join(_ABI_DIR, "bridge.json")
ABI_NODE_INTERFACE = os.path.join(_ABI_DIR, "node_interface.json")
ABI_ARB_RETRYABLE_TX = os.path.join(_ABI_DIR, "arb_retryable_tx_precompile.json")
ABI_ARB_SYS = os.path.join(_ABI_DIR, "arb_sys_precompile.json")
ABI_OUTBOX = os.path.join(_ABI_DIR, "outbox.json")
ABI_CLASSIC_OUTBOX = os.path.join(_ABI_DIR, "classic_outbox.json")
ABI_ROLLUP = os.path.join(_ABI_DIR, "rollup.json")
ABI_L1_GATEWAY_ROUTER = os.path.join(_ABI_DIR, "l1_gateway_router.json")
ABI_L1_TELEPORTER = os.path.join(_ABI_DIR, "l1_teleporter.json")
ABI_L2_FORWARDER_FACTORY = os.path.join(_ABI_DIR, "l2_forwarder_factory.json")
ABI_RELAYED_L2_FORWARDER_FACTORY = os.path.join(_ABI_DIR, "relayed_l2_forwarder_factory.json")
ABI_L2_FORWARDER = os.path.join(_ABI_DIR, "l2_forwarder.json")
ABI_ERC20 = os.path.join(_ABI_DIR, "erc20.json")
