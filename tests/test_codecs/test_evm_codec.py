"""
EVM codec tests: EIP-1559 encoding, signature recovery through eth_account,
fee cap mapping and message builders.
"""

from decimal import Decimal

import pytest
from eth_abi import decode as abi_decode
from eth_account import Account
from eth_utils import keccak

from txpipe.chains.profiles import BASE, GAIA
from txpipe.codecs.evm import (
    EvmCodec,
    checksum_address,
    decode_transaction,
    erc20_transfer_message,
    native_transfer_message,
)
from txpipe.engine.exceptions import ConfigurationError, ParseError, SerializationError
from txpipe.pipeline.signer import Signer
from txpipe.schemas.bases import Coin, Fee, Message

from chain_fakes import KEY_ONE, KEY_ONE_ADDRESS, MOCK_EVM_RECIPIENT


PROFILE = BASE.with_overrides(priority_fee=2, gas_price=Decimal(100))
FEE = Fee(amount=[Coin(denom="wei", amount=21_000 * 100)], gas_limit=21_000)
USDC_BASE = "0x833589fcd6edb6e08f4c7c32d4f71b54bda02913"


@pytest.fixture
def codec():
    return EvmCodec(PROFILE)


@pytest.fixture
def signer(codec, signing):
    return Signer(codec, signing, KEY_ONE)


class TestEncoding:

    def test_unsigned_fields(self, codec, signer):
        message = native_transfer_message(MOCK_EVM_RECIPIENT, 12345)
        decoded = decode_transaction(codec.sign_bytes(message, FEE, 9, 0, signer.public_key))

        assert decoded["chain_id"] == 8453
        assert decoded["nonce"] == 9
        assert decoded["gas"] == 21_000
        assert decoded["max_fee_per_gas"] == 100
        assert decoded["max_priority_fee_per_gas"] == 2
        assert decoded["to"] == MOCK_EVM_RECIPIENT
        assert decoded["value"] == 12345
        assert decoded["data"] == b""
        assert "r" not in decoded

    def test_priority_fee_capped_by_max_fee(self, signing):
        codec = EvmCodec(PROFILE.with_overrides(priority_fee=10_000))
        assert codec.fee_caps(FEE) == {"max_fee_per_gas": 100, "max_priority_fee_per_gas": 100}

    def test_max_fee_rounds_up(self, codec):
        fee = Fee(amount=[Coin(denom="wei", amount=1_001)], gas_limit=10)
        assert codec.fee_caps(fee)["max_fee_per_gas"] == 101

    def test_bytes_are_deterministic(self, codec, signer):
        message = native_transfer_message(MOCK_EVM_RECIPIENT, 1)
        assert codec.sign_bytes(message, FEE, 0, 0, signer.public_key) == codec.sign_bytes(
            message, FEE, 0, 0, signer.public_key
        )

    def test_bad_target_rejected(self, codec, signer):
        with pytest.raises(SerializationError):
            codec.sign_bytes(Message(type_identifier="/cosmos.bank.v1beta1.MsgSend"), FEE, 0, 0, signer.public_key)

    def test_decode_rejects_legacy_bytes(self):
        with pytest.raises(SerializationError):
            decode_transaction(b"\xf8\x00")


class TestSigning:

    def test_signer_address_is_checksummed(self, signer):
        assert signer.address == KEY_ONE_ADDRESS

    def test_eth_account_recovers_sender(self, signer):
        signed = signer.sign(native_transfer_message(MOCK_EVM_RECIPIENT, 10**15), FEE, sequence=3, account_number=0)
        assert Account.recover_transaction(signed.tx_bytes) == KEY_ONE_ADDRESS

    def test_tx_hash_is_keccak_of_envelope(self, signer):
        signed = signer.sign(native_transfer_message(MOCK_EVM_RECIPIENT, 1), FEE, sequence=0, account_number=0)
        assert signed.tx_hash == "0x" + keccak(signed.tx_bytes).hex()

    def test_signed_envelope_decodes(self, signer):
        signed = signer.sign(native_transfer_message(MOCK_EVM_RECIPIENT, 1), FEE, sequence=4, account_number=0)
        decoded = decode_transaction(signed.tx_bytes)
        assert decoded["nonce"] == 4
        assert decoded["y_parity"] in (0, 1)
        assert decoded["s"] > 0

    def test_assemble_requires_64_byte_signature(self, codec, signer):
        sign_bytes = codec.sign_bytes(native_transfer_message(MOCK_EVM_RECIPIENT, 1), FEE, 0, 0, signer.public_key)
        with pytest.raises(SerializationError):
            codec.assemble(sign_bytes, b"\x00" * 65, 0)


class TestMessageBuilders:

    def test_erc20_transfer_calldata(self):
        message = erc20_transfer_message(USDC_BASE, MOCK_EVM_RECIPIENT, 2_500_000)
        assert message.type_identifier == checksum_address(USDC_BASE)
        assert message.value == 0
        assert message.payload[:4] == keccak(text="transfer(address,uint256)")[:4]
        to, amount = abi_decode(["address", "uint256"], message.payload[4:])
        assert checksum_address(to) == MOCK_EVM_RECIPIENT
        assert amount == 2_500_000

    def test_lowercase_addresses_are_checksummed(self):
        message = native_transfer_message(MOCK_EVM_RECIPIENT.lower(), 1)
        assert message.type_identifier == MOCK_EVM_RECIPIENT

    @pytest.mark.parametrize("address", ["", "0x1234", "cosmos1abc", "0xZZ5F4552091A69125d5DfCb7b8C2659029395Bdf"])
    def test_invalid_addresses(self, address):
        with pytest.raises(ParseError):
            checksum_address(address)

    def test_codec_refuses_cosmos_profile(self):
        with pytest.raises(ConfigurationError):
            EvmCodec(GAIA)
