"""Unit tests for retryable ticket fee estimation."""

import random
from unittest.mock import Mock, patch

import pytest
from eth_abi import abi
from hexbytes import HexBytes

from nitro_bridge.nitro_stack.custom_errors import NitroStackConfigError, NitroStackDataError
from nitro_bridge.nitro_stack.gas_estimator import (
    ERROR_TRIGGERING_PARAMS,
    RETRYABLE_DATA_SIGNATURE,
    RETRYABLE_DATA_TYPES,
    GasEstimator,
    RetryableDataTools,
    get_base_fee,
)
from nitro_bridge.nitro_stack.types import (
    GasLimitOverride,
    GasOverrides,
    PercentIncreaseOverride,
    RetryableGasEstimate,
    RetryableTicketRequest,
)
from nitro_bridge.utils.chain import function_selector

from vectors import WALLET

DESTINATION = "0x6c411aD3E74De3E7Bd422b94A27770f5B86C623B"


@pytest.fixture
def child_w3():
    w3 = Mock()
    w3.eth.gas_price = 100
    return w3


@pytest.fixture
def estimator(child_w3):
    return GasEstimator(child_w3)


@pytest.fixture
def request_ticket():
    return RetryableTicketRequest(
        from_address=WALLET,
        to=DESTINATION,
        l2_call_value=1000,
        excess_fee_refund_address=WALLET,
        call_value_refund_address=WALLET,
        data=HexBytes(b"\x01" * 100),
    )


def _retryable_data_revert(values) -> str:
    payload = function_selector(RETRYABLE_DATA_SIGNATURE) + abi.encode(RETRYABLE_DATA_TYPES, values)
    return HexBytes(payload).to_0x_hex()


class TestFees:
    """Test suite for the individual fee estimates."""

    def test_submission_fee_formula(self):
        assert GasEstimator.calculate_submission_fee(0, 10) == 14_000
        assert GasEstimator.calculate_submission_fee(100, 10) == 20_000

    def test_submission_fee_padded_by_default(self, estimator):
        # (1400 + 6 * 100) * 10 = 20_000, +300%
        assert estimator.estimate_submission_fee(10, 100) == 80_000

    def test_submission_fee_overrides(self, estimator):
        assert estimator.estimate_submission_fee(
            10, 100, PercentIncreaseOverride(base=1_000)
        ) == 4_000
        assert estimator.estimate_submission_fee(
            10, 100, PercentIncreaseOverride(percent_increase=0)
        ) == 20_000

    def test_max_fee_per_gas_padded_by_default(self, estimator):
        assert estimator.estimate_max_fee_per_gas() == 600

    def test_max_fee_per_gas_override(self, estimator):
        assert estimator.estimate_max_fee_per_gas(
            PercentIncreaseOverride(base=7, percent_increase=100)
        ) == 14

    def test_base_fee_required(self):
        w3 = Mock()
        w3.eth.get_block.return_value = {"number": 1}

        with pytest.raises(NitroStackConfigError):
            get_base_fee(w3)

    def test_base_fee(self):
        w3 = Mock()
        w3.eth.get_block.return_value = {"baseFeePerGas": 42}

        assert get_base_fee(w3) == 42


class TestEstimateAll:
    """Test suite for GasEstimator.estimate_all."""

    def test_defaults(self, estimator, request_ticket):
        with patch.object(
            GasEstimator, "estimate_retryable_ticket_gas_limit", return_value=50_000
        ) as gas_limit:
            estimate = estimator.estimate_all(request_ticket, 10)

        gas_limit.assert_called_once_with(request_ticket)
        assert estimate.gas_limit == 50_000
        assert estimate.max_fee_per_gas == 600
        assert estimate.max_submission_cost == 80_000
        assert estimate.deposit == 50_000 * 600 + 80_000 + 1000

    def test_gas_limit_overrides(self, estimator, request_ticket):
        overrides = GasOverrides(gas_limit=GasLimitOverride(base=10_000, percent_increase=50, min=20_000))

        with patch.object(GasEstimator, "estimate_retryable_ticket_gas_limit") as gas_limit:
            estimate = estimator.estimate_all(request_ticket, 10, overrides)

        gas_limit.assert_not_called()
        assert estimate.gas_limit == 20_000

    def test_deposit_override(self, estimator, request_ticket):
        overrides = GasOverrides(gas_limit=GasLimitOverride(base=1), deposit=123)

        assert estimator.estimate_all(request_ticket, 10, overrides).deposit == 123


class TestIsValid:
    def test_random_estimates(self):
        """An estimate is valid iff it covers both fee components of the new one."""
        rng = random.Random(7)

        for _ in range(200):
            old = RetryableGasEstimate(
                gas_limit=rng.randint(1, 10**6),
                max_submission_cost=rng.randint(0, 10**6),
                max_fee_per_gas=rng.randint(0, 10**6),
                deposit=rng.randint(0, 10**12),
            )
            new = RetryableGasEstimate(
                gas_limit=rng.randint(1, 10**6),
                max_submission_cost=rng.randint(0, 10**6),
                max_fee_per_gas=rng.randint(0, 10**6),
                deposit=rng.randint(0, 10**12),
            )

            expected = (
                old.max_fee_per_gas >= new.max_fee_per_gas
                and old.max_submission_cost >= new.max_submission_cost
            )
            assert GasEstimator.is_valid(old, new) == expected

    def test_estimate_is_valid_against_itself(self):
        estimate = RetryableGasEstimate(1, 2, 3, 4)

        assert GasEstimator.is_valid(estimate, estimate)


class TestRetryableData:
    """Test suite for the RetryableData revert parsing."""

    VALUES = [WALLET, DESTINATION, 1, 2, 3, WALLET, WALLET, 4, 5, b"\xab\xcd"]

    def test_parses_revert(self):
        data = RetryableDataTools.try_parse_error(Exception(_retryable_data_revert(self.VALUES)))

        assert data is not None
        assert data.from_address == WALLET
        assert data.to == DESTINATION
        assert data.deposit == 2
        assert data.gas_limit == 4
        assert data.data == HexBytes(b"\xab\xcd")

    def test_other_error(self):
        assert RetryableDataTools.try_parse_error(Exception("execution reverted")) is None

    def test_malformed_payload(self):
        with pytest.raises(NitroStackDataError):
            RetryableDataTools.try_parse_error(function_selector(RETRYABLE_DATA_SIGNATURE) + b"\x01")

    def test_populate_function_params(self, estimator):
        """The ticket is read from the revert, estimated and handed back to the builder."""
        parent_w3 = Mock()
        parent_w3.eth.call.side_effect = Exception(_retryable_data_revert(self.VALUES))
        parent_w3.eth.get_block.return_value = {"baseFeePerGas": 10}

        calls = []

        def data_func(params):
            calls.append(params)
            return {"to": DESTINATION, "value": params.gas_limit}

        with patch.object(GasEstimator, "estimate_retryable_ticket_gas_limit", return_value=30_000):
            estimates, retryable, tx = estimator.populate_function_params(data_func, parent_w3)

        assert calls[0] == ERROR_TRIGGERING_PARAMS
        assert calls[1].gas_limit == estimates.gas_limit == 30_000
        assert retryable.l2_call_value == 1
        assert tx == {"to": DESTINATION, "value": 30_000}

    def test_populate_function_params_without_revert(self, estimator):
        parent_w3 = Mock()
        parent_w3.eth.call.return_value = b""

        with pytest.raises(NitroStackDataError):
            estimator.populate_function_params(lambda params: {}, parent_w3)
