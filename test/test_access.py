"""Unit tests for chain access checks."""

from unittest.mock import Mock

import pytest

from nitro_bridge.nitro_stack.access import check_chain_id, get_w3, require_writer
from nitro_bridge.nitro_stack.custom_errors import NitroStackConfigError
from nitro_bridge.utils.providers import Reader


class TestAccess:
    """Test suite for Reader / Writer handling."""

    def test_reader_is_not_a_writer(self, reader):
        with pytest.raises(NitroStackConfigError, match="to redeem"):
            require_writer(reader, "redeem")

    def test_writer(self, writer):
        assert require_writer(writer, "redeem") is writer

    def test_missing_provider(self):
        with pytest.raises(NitroStackConfigError):
            get_w3(Reader(None))

    def test_get_w3(self, reader, mock_w3):
        assert get_w3(reader) is mock_w3

    def test_check_chain_id(self, reader, mock_w3):
        mock_w3.eth.chain_id = 42161

        check_chain_id(reader, 42161)
        with pytest.raises(NitroStackConfigError, match="expected chain 1"):
            check_chain_id(reader, 1)

    def test_unsupported_access(self):
        with pytest.raises(NitroStackConfigError):
            get_w3(Mock())
