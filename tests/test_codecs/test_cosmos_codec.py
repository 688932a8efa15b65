"""
Cosmos codec tests: deterministic SignDoc bytes, TxRaw assembly, transaction
hashes and bech32 address helpers.
"""

import hashlib

import pytest
from cosmpy.protos.cosmos.bank.v1beta1.tx_pb2 import MsgSend
from cosmpy.protos.cosmos.tx.v1beta1.tx_pb2 import AuthInfo, SignDoc, TxBody, TxRaw
from eth_keys.backends import NativeECCBackend
from eth_keys.datatypes import Signature

from txpipe.chains.profiles import BASE, GAIA, NEUTRON
from txpipe.codecs.cosmos import (
    MSG_SEND_TYPE_URL,
    CosmosCodec,
    bank_send_message,
    decode_cosmos_address,
    to_cosmos_address,
    validate_cosmos_address,
)
from txpipe.engine.exceptions import ConfigurationError, ParseError, SerializationError
from txpipe.pipeline.signer import Signer
from txpipe.schemas.bases import Coin, Fee, Message

from chain_fakes import MOCK_OTHER_PRIVATE_KEY, MOCK_PRIVATE_KEY, cosmos_address_for


@pytest.fixture
def codec():
    return CosmosCodec(GAIA)


@pytest.fixture
def signer(codec, signing):
    return Signer(codec, signing, MOCK_PRIVATE_KEY)


@pytest.fixture
def message(signer, signing):
    recipient = cosmos_address_for(signing, MOCK_OTHER_PRIVATE_KEY)
    return bank_send_message(signer.address, recipient, [Coin(denom="uatom", amount=1_000)])


FEE = Fee(amount=[Coin(denom="uatom", amount=3_750)], gas_limit=150_000)


class TestSignBytes:

    def test_identical_inputs_give_identical_bytes(self, codec, signer, message):
        first = codec.sign_bytes(message, FEE, 7, 5, signer.public_key, memo="hi")
        second = codec.sign_bytes(message, FEE, 7, 5, signer.public_key, memo="hi")
        assert first == second

    def test_sign_doc_carries_signing_context(self, codec, signer, message):
        sign_doc = SignDoc()
        sign_doc.ParseFromString(codec.sign_bytes(message, FEE, 7, 5, signer.public_key, memo="hi"))

        assert sign_doc.chain_id == "cosmoshub-4"
        assert sign_doc.account_number == 5

        body = TxBody()
        body.ParseFromString(sign_doc.body_bytes)
        assert body.memo == "hi"
        assert body.messages[0].type_url == MSG_SEND_TYPE_URL

        auth_info = AuthInfo()
        auth_info.ParseFromString(sign_doc.auth_info_bytes)
        assert auth_info.signer_infos[0].sequence == 7
        assert auth_info.fee.gas_limit == 150_000
        assert auth_info.fee.amount[0].amount == "3750"

    def test_sequence_changes_bytes(self, codec, signer, message):
        assert codec.sign_bytes(message, FEE, 7, 5, signer.public_key) != codec.sign_bytes(
            message, FEE, 8, 5, signer.public_key
        )

    def test_rejects_non_type_url(self, codec, signer):
        with pytest.raises(SerializationError):
            codec.sign_bytes(Message(type_identifier="MsgSend"), FEE, 0, 0, signer.public_key)

    def test_rejects_bad_fee_denom(self, codec, signer, message):
        bad_fee = Fee(amount=[Coin(denom="!!", amount=1)], gas_limit=1)
        with pytest.raises(ParseError):
            codec.sign_bytes(message, bad_fee, 0, 0, signer.public_key)


class TestSignedEnvelope:

    def test_tx_raw_parses_and_verifies(self, codec, signer, message, signing):
        signed = signer.sign(message, FEE, sequence=7, account_number=5)

        tx_raw = TxRaw()
        tx_raw.ParseFromString(signed.tx_bytes)
        assert len(tx_raw.signatures) == 1
        assert len(tx_raw.signatures[0]) == 64

        sign_bytes = codec.sign_bytes(message, FEE, 7, 5, signer.public_key)
        assert tx_raw.body_bytes == SignDoc.FromString(sign_bytes).body_bytes

        digest = hashlib.sha256(sign_bytes).digest()
        raw_signature = tx_raw.signatures[0]
        verified = any(
            Signature(
                vrs=(v, int.from_bytes(raw_signature[:32], "big"), int.from_bytes(raw_signature[32:], "big")),
                backend=NativeECCBackend(),
            ).recover_public_key_from_msg_hash(digest).to_compressed_bytes() == signer.public_key
            for v in (0, 1)
        )
        assert verified

    def test_tx_hash_is_uppercase_sha256(self, signer, message):
        signed = signer.sign(message, FEE, sequence=7, account_number=5)
        assert signed.tx_hash == hashlib.sha256(signed.tx_bytes).hexdigest().upper()
        assert (signed.sequence, signed.account_number) == (7, 5)

    def test_message_payload_survives(self, signer, message):
        signed = signer.sign(message, FEE, sequence=1, account_number=1)
        body = TxBody.FromString(TxRaw.FromString(signed.tx_bytes).body_bytes)
        msg = MsgSend.FromString(body.messages[0].value)
        assert msg.from_address == signer.address
        assert msg.amount[0].denom == "uatom"


class TestAddresses:

    def test_signer_address_uses_profile_prefix(self, signer):
        assert signer.address.startswith("cosmos1")
        assert validate_cosmos_address(signer.address, "cosmos") == signer.address

    def test_prefix_conversion_keeps_key_hash(self, signer, signing):
        neutron = to_cosmos_address(signer.address, "neutron")
        assert neutron == cosmos_address_for(signing, MOCK_PRIVATE_KEY, prefix="neutron")
        assert decode_cosmos_address(neutron)[1] == decode_cosmos_address(signer.address)[1]

    def test_wrong_prefix_rejected(self, signer):
        with pytest.raises(ParseError):
            validate_cosmos_address(signer.address, NEUTRON.address_prefix)

    @pytest.mark.parametrize("address", ["", "cosmos1", "notbech32", "cosmos1qqqqqqqq"])
    def test_malformed_addresses(self, address):
        with pytest.raises(ParseError):
            decode_cosmos_address(address)

    def test_codec_refuses_evm_profile(self):
        with pytest.raises(ConfigurationError):
            CosmosCodec(BASE)
