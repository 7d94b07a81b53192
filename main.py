import argparse
import logging

from hexbytes import HexBytes

from nitro_bridge.nitro_stack.child_to_parent import ChildToParentMessenger
from nitro_bridge.nitro_stack.parent_to_child import ParentToChildMessenger
from nitro_bridge.nitro_stack.parent_transaction import ParentTransactionReceipt
from nitro_bridge.utils.config import ENV
from nitro_bridge.utils.networks import default_registry
from nitro_bridge.utils.providers import Reader, get_web3

logger = logging.getLogger(__name__)


def inspect_deposit(parent: Reader, child: Reader, network, txn_hash: HexBytes) -> None:
    receipt = parent.w3.eth.get_transaction_receipt(txn_hash)
    parent_receipt = ParentTransactionReceipt(receipt, parent.w3, network)

    messenger = ParentToChildMessenger(child, network, parent)

    if parent_receipt.is_classic(network.chain_id):
        for message in parent_receipt.get_parent_to_child_messages_classic(network.chain_id):
            logger.info(
                "Classic retryable %s: %s",
                message.message_number,
                messenger.classic_status(message).name,
            )
        return

    for message in parent_receipt.get_parent_to_child_messages(network.chain_id):
        logger.info(
            "Retryable %s: %s",
            message.retryable_creation_id.to_0x_hex(),
            messenger.status(message).name,
        )

    for deposit in parent_receipt.get_eth_deposits(network.chain_id):
        logger.info(
            "ETH deposit of %s wei to %s: %s",
            deposit.value,
            deposit.to,
            messenger.eth_deposit_status(deposit).name,
        )


def inspect_withdrawal(parent: Reader, child: Reader, network, txn_hash: HexBytes) -> None:
    messenger = ChildToParentMessenger(parent, child, network)

    for message in messenger.get_messages(txn_hash):
        logger.info(
            "Message to %s with %s wei: %s",
            message.destination,
            message.callvalue,
            messenger.status(message).name,
        )


def main():
    logging.basicConfig(
        level=logging.INFO, format="%(asctime)s %(levelname)s %(name)s: %(message)s"
    )

    parser = argparse.ArgumentParser(description="Status of Arbitrum cross-chain messages")
    parser.add_argument("direction", choices=["deposit", "withdrawal"])
    parser.add_argument("txn_hash", help="parent chain hash for deposits, child chain hash for withdrawals")
    parser.add_argument("--chain-id", type=int, default=42161, help="child chain id")
    args = parser.parse_args()

    network = default_registry().get(args.chain_id)

    parent = Reader(get_web3(ENV.PARENT_RPC_URL))
    child = Reader(get_web3(ENV.CHILD_RPC_URL))

    if args.direction == "deposit":
        inspect_deposit(parent, child, network, HexBytes(args.txn_hash))
    else:
        inspect_withdrawal(parent, child, network, HexBytes(args.txn_hash))


if __name__ == "__main__":
    main()
