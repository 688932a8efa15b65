"""
TransactionClient: one generic client for every supported chain.

A client is a ChainProfile (data), a MessageCodec (wire format), a
NodeTransport (network) and a shared SigningService, wired into the
submission pipeline:

    simulate -> estimate fee -> [acquire sequence -> sign -> broadcast
    -> commit | release] -> confirm

Core Classes:
    - TransactionClient: Submit, simulate, confirm and watch balances

Example:
    signing = SigningService()
    client = await TransactionClient.create(
        profile=get_profile("neutron"),
        transport=CosmosGrpcTransport("grpc-kralum.neutron-1.neutron.org:80"),
        private_key=os.environ["TXPIPE_PRIVATE_KEY"],
        signing=signing,
    )
    async with client:
        response = await client.transfer("neutron1...", 1_000_000)
"""

import logging
from contextlib import aclosing
from typing import List, Optional, Union

from ..chains.profiles import ChainProfile
from ..codecs.bases import MessageCodec
from ..codecs.cosmos import CosmosCodec, bank_send_message
from ..codecs.evm import EvmCodec, erc20_transfer_message, native_transfer_message
from ..crypto.keys import load_private_key
from ..crypto.service import SigningService
from ..engine.events import (
    BaseEvent,
    BroadcastAcceptedEvent,
    BroadcastRejectedEvent,
    Dependencies,
    EventBus,
    EventHookFunc,
    SubmitRequestedEvent,
    TxConfirmedEvent,
)
from ..engine.exceptions import (
    BroadcastRejectedError,
    ClientError,
    ConfigurationError,
    SimulationFailedError,
    classify_rejection,
)
from ..engine.executors import EventChain
from ..pipeline.balance import BalanceWatcher
from ..pipeline.broadcaster import Broadcaster
from ..pipeline.confirmer import Confirmer
from ..pipeline.fees import FeeEstimator
from ..pipeline.flows import resolve_unit_price, setup_event_bus
from ..pipeline.sequencer import AccountSequencer
from ..pipeline.signer import Signer
from ..pipeline.simulator import Simulator
from ..schemas.bases import (
    BroadcastMode,
    Coin,
    Fee,
    Message,
    PollPolicy,
    SignedTransaction,
    SimulationResult,
    TransactionResponse,
)
from ..schemas.fees import AutoFeePolicy, FeePolicyTypes
from ..transports.bases import NodeTransport
from ..transports.cosmos_grpc import CosmosGrpcTransport
from ..transports.evm_rpc import EvmRpcTransport
from ..utils.cancel import CancelToken
from .settings import ClientSettings


logger = logging.getLogger(__name__)


def codec_for(profile: ChainProfile) -> MessageCodec:
    """Default codec for the profile's chain family."""
    return EvmCodec(profile) if profile.is_evm else CosmosCodec(profile)


def transport_for(profile: ChainProfile, rpc_url: str, timeout: float = 10.0) -> NodeTransport:
    """Default transport for the profile's chain family."""
    if profile.is_evm:
        return EvmRpcTransport(rpc_url, timeout=timeout)
    return CosmosGrpcTransport(
        rpc_url,
        timeout=timeout,
        registry_name=profile.registry_name if profile.dynamic_gas_price else None,
        fee_denom=profile.fee_denom,
    )


class TransactionClient:
    """
    Generic transaction pipeline bound to one chain and one signing identity.

    Prefer ``create()`` or ``from_settings()``: both look the account up on
    the node before returning.

    Args:
        profile: Chain profile.
        transport: Node transport.
        signer: Signer for this identity.
        sequencer: Sequencer for the signer's account.
        poll: Default confirmation poll policy.
        event_bus: Custom bus; the built-in handlers are used when None.
    """

    def __init__(
        self,
        profile: ChainProfile,
        transport: NodeTransport,
        signer: Signer,
        sequencer: AccountSequencer,
        poll: Optional[PollPolicy] = None,
        event_bus: Optional[EventBus] = None,
    ) -> None:
        self.profile = profile
        self.transport = transport
        self.signer = signer
        self.sequencer = sequencer
        self.poll = poll or PollPolicy.default()
        self.event_bus = event_bus or setup_event_bus()

        self.simulator = Simulator(signer, transport)
        self.estimator = FeeEstimator(profile)
        self.broadcaster = Broadcaster(transport)
        self.confirmer = Confirmer(transport, self.poll)
        self.balance_watcher = BalanceWatcher(transport, self.poll)

        self.deps = Dependencies(
            profile=profile,
            transport=transport,
            sequencer=sequencer,
            signer=signer,
            simulator=self.simulator,
            estimator=self.estimator,
            broadcaster=self.broadcaster,
            confirmer=self.confirmer,
        )

    # ------------------------------------------------------------------
    # Construction
    # ------------------------------------------------------------------

    @classmethod
    async def create(
        cls,
        profile: ChainProfile,
        transport: NodeTransport,
        private_key: Union[bytes, str],
        signing: Optional[SigningService] = None,
        codec: Optional[MessageCodec] = None,
        poll: Optional[PollPolicy] = None,
        event_bus: Optional[EventBus] = None,
        cancel: Optional[CancelToken] = None,
    ) -> "TransactionClient":
        """
        Build a client and fetch its account from the node.

        Raises:
            InvalidKeyError: If the private key is malformed.
            NotFoundError: If the account does not exist on chain yet.
            ClientError: On any other account lookup failure.
        """
        signing = signing or SigningService()
        signing.initialize()
        signer = Signer(codec or codec_for(profile), signing, private_key)
        sequencer = await AccountSequencer.create(transport, signer.address, cancel=cancel)
        logger.debug(f"Client ready for {signer.address} on {profile.name} (backend={signing.backend_name})")
        return cls(profile, transport, signer, sequencer, poll=poll, event_bus=event_bus)

    @classmethod
    async def from_settings(
        cls,
        settings: Optional[ClientSettings] = None,
        signing: Optional[SigningService] = None,
    ) -> "TransactionClient":
        """
        Build a client from ClientSettings (environment variables by default).

        Raises:
            ConfigurationError: If the endpoint or signing key is missing.
        """
        settings = settings or ClientSettings.from_env()
        profile = settings.profile()
        if not settings.rpc_url:
            raise ConfigurationError("no node endpoint configured: set TXPIPE_RPC_URL")
        private_key = load_private_key(settings.private_key, settings.mnemonic, hd_path=profile.hd_path)
        transport = transport_for(profile, settings.rpc_url, timeout=settings.request_timeout)
        try:
            return await cls.create(
                profile,
                transport,
                private_key,
                signing=signing or SigningService(prefer_fast=settings.fast_crypto),
                poll=settings.poll_policy(),
            )
        except ClientError:
            await transport.close()
            raise

    async def close(self) -> None:
        await self.transport.close()

    async def __aenter__(self) -> "TransactionClient":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.close()

    # ------------------------------------------------------------------
    # Introspection
    # ------------------------------------------------------------------

    @property
    def address(self) -> str:
        return self.signer.address

    @property
    def account_number(self) -> int:
        return self.sequencer.snapshot()[0]

    @property
    def sequence(self) -> int:
        """Next sequence (or nonce) this client will sign with."""
        return self.sequencer.snapshot()[1]

    @property
    def backend_name(self) -> str:
        return self.signer.signing.backend_name

    def hook(self, event_class: type[BaseEvent], hook_func: EventHookFunc) -> None:
        """Observe a pipeline stage; see txpipe.engine.events for event types."""
        self.event_bus.hook(event_class, hook_func)

    # ------------------------------------------------------------------
    # Submission
    # ------------------------------------------------------------------

    async def submit(
        self,
        message: Message,
        fee_policy: Optional[FeePolicyTypes] = None,
        memo: str = "",
        mode: BroadcastMode = BroadcastMode.SYNC,
        poll: Optional[PollPolicy] = None,
        cancel: Optional[CancelToken] = None,
        wait: bool = True,
    ) -> Union[TransactionResponse, SignedTransaction]:
        """
        Simulate, price, sign, broadcast and (optionally) confirm ``message``.

        Args:
            message: Unsigned operation from a message builder.
            fee_policy: Defaults to AutoFeePolicy() with the profile's adjustment.
            memo: Transaction memo (Cosmos only).
            mode: Broadcast mode.
            poll: Confirmation poll policy; the client default when None.
            cancel: Cancel token honoured at every suspension point.
            wait: Return the SignedTransaction right after acceptance instead
                of waiting for inclusion.

        Returns:
            TransactionResponse once included, or SignedTransaction when
            ``wait`` is False.

        Raises:
            SimulationFailedError: Dry run failed; nothing was submitted.
            BroadcastRejectedError: Node refused the transaction; sequence unchanged.
            TimeoutError: Accepted but not seen in time.
            OperationCancelledError: Cancelled by ``cancel`` or its deadline.
            ClientError: Any other failure. Whenever the node had already
                accepted the transaction the error carries ``submitted=True``
                and ``tx_hash``, and the sequence was consumed.
        """
        request = SubmitRequestedEvent(
            message=message,
            fee_policy=fee_policy,
            memo=memo,
            mode=mode,
            poll=poll or self.poll,
            wait=wait,
            cancel=cancel,
        )

        accepted: Optional[BroadcastAcceptedEvent] = None
        rejected: Optional[BroadcastRejectedEvent] = None
        confirmed: Optional[TxConfirmedEvent] = None
        try:
            async with aclosing(EventChain(self.event_bus, self.deps).execute(request)) as events:
                async for event in events:
                    if isinstance(event, BroadcastAcceptedEvent):
                        accepted = event
                    elif isinstance(event, BroadcastRejectedEvent):
                        rejected = event
                    elif isinstance(event, TxConfirmedEvent):
                        confirmed = event
        except ClientError as exc:
            # past acceptance the sequence is spent whatever went wrong
            if accepted is not None:
                exc.submitted = True
                exc.tx_hash = exc.tx_hash or accepted.signed.tx_hash
            raise

        if rejected is not None:
            outcome = rejected.outcome
            raise BroadcastRejectedError(
                f"transaction rejected (code {outcome.code}): {outcome.raw_log}",
                tx_hash=outcome.tx_hash or rejected.signed.tx_hash,
                code=outcome.code,
                raw_log=outcome.raw_log,
                codespace=outcome.codespace,
                reason=classify_rejection(outcome.raw_log),
            )
        if accepted is None:
            raise ClientError("submission pipeline ended without a broadcast outcome")
        if not wait:
            return accepted.signed
        if confirmed is None:
            raise ClientError(f"submission pipeline ended without confirming {accepted.signed.tx_hash}")
        return confirmed.response

    async def transfer(
        self,
        to: str,
        amount: int,
        denom: Optional[str] = None,
        **submit_kwargs,
    ) -> Union[TransactionResponse, SignedTransaction]:
        """
        Send ``amount`` minimal units to ``to``.

        ``denom`` defaults to the profile's fee denom. On EVM profiles a
        ``0x`` denom is treated as an ERC-20 token address.
        """
        return await self.submit(self.transfer_message(to, amount, denom), **submit_kwargs)

    def transfer_message(self, to: str, amount: int, denom: Optional[str] = None) -> Message:
        denom = denom or self.profile.fee_denom
        if self.profile.is_evm:
            if denom.lower().startswith("0x"):
                return erc20_transfer_message(denom, to, amount)
            return native_transfer_message(to, amount)
        return bank_send_message(self.address, to, [Coin(denom=denom, amount=amount)])

    # ------------------------------------------------------------------
    # Read-only pipeline stages
    # ------------------------------------------------------------------

    async def simulate(
        self,
        message: Message,
        memo: str = "",
        cancel: Optional[CancelToken] = None,
    ) -> SimulationResult:
        """Dry-run ``message`` at the current sequence; never moves the sequence."""
        account_number, sequence = self.sequencer.snapshot()
        return await self.simulator.simulate(message, account_number, sequence, memo=memo, cancel=cancel)

    async def estimate_fee(
        self,
        message: Message,
        fee_policy: Optional[FeePolicyTypes] = None,
        memo: str = "",
        cancel: Optional[CancelToken] = None,
    ) -> Fee:
        """
        Fee the pipeline would attach to ``message`` right now.

        Raises:
            SimulationFailedError: If the dry run fails.
        """
        policy = fee_policy or AutoFeePolicy()
        if not isinstance(policy, AutoFeePolicy):
            return self.estimator.estimate(None, policy)
        simulation = await self.simulate(message, memo=memo, cancel=cancel)
        if not simulation.succeeded:
            raise SimulationFailedError(
                f"simulation failed: {simulation.log}", code=simulation.code, log=simulation.log
            )
        unit_price = await resolve_unit_price(self.deps, cancel)
        return self.estimator.estimate(simulation, policy, unit_price=unit_price)

    async def confirm(
        self,
        tx_hash: str,
        poll: Optional[PollPolicy] = None,
        cancel: Optional[CancelToken] = None,
    ) -> TransactionResponse:
        return await self.confirmer.confirm(tx_hash, poll, cancel=cancel)

    async def wait_for_balance(
        self,
        min_amount: int,
        denom: Optional[str] = None,
        address: Optional[str] = None,
        poll: Optional[PollPolicy] = None,
        cancel: Optional[CancelToken] = None,
    ) -> int:
        return await self.balance_watcher.wait_for_balance(
            address or self.address,
            denom or self.profile.fee_denom,
            min_amount,
            poll,
            cancel=cancel,
        )

    async def query_balance(self, address: Optional[str] = None, denom: Optional[str] = None) -> int:
        return await self.transport.get_balance(address or self.address, denom or self.profile.fee_denom)

    async def query_balances(self, denoms: List[str], address: Optional[str] = None) -> List[Coin]:
        return [Coin(denom=denom, amount=await self.query_balance(address, denom)) for denom in denoms]

    async def resync(self, cancel: Optional[CancelToken] = None) -> int:
        """Refetch the sequence from the node; returns the new next sequence."""
        account = await self.sequencer.resync(self.transport, cancel)
        return account.sequence
