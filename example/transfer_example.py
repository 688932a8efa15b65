from txpipe import AutoFeePolicy, ClientSettings, TransactionClient, configure_logging
from txpipe.engine.events import BroadcastAcceptedEvent, FeeEstimatedEvent

# TXPIPE_CHAIN, TXPIPE_RPC_URL and TXPIPE_PRIVATE_KEY (or TXPIPE_MNEMONIC)
# are read from the environment or a .env file.
settings = ClientSettings.from_env()
configure_logging(settings.log_level)

recipient = "cosmos1xxxx"  # Replace with actual address


async def on_fee(event, deps):
    print("Fee:", event.fee.amount, "gas:", event.fee.gas_limit)


async def on_accepted(event, deps):
    print("Accepted:", event.signed.tx_hash, "sequence:", event.signed.sequence)


async def main():
    async with await TransactionClient.from_settings(settings) as client:
        client.hook(FeeEstimatedEvent, on_fee)
        client.hook(BroadcastAcceptedEvent, on_accepted)

        print("Sender:", client.address, "balance:", await client.query_balance())
        return await client.transfer(
            recipient,
            1_000,
            fee_policy=AutoFeePolicy(gas_adjustment=1.5),
            memo="txpipe example",
        )


if __name__ == "__main__":
    import asyncio
    response = asyncio.run(main())
    print("Response:", response.tx_hash, "height:", response.height, "code:", response.code)
