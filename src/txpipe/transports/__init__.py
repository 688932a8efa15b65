from .bases import NodeTransport
from .cosmos_grpc import CosmosGrpcTransport, map_rpc_error
from .evm_rpc import EvmRpcTransport

__all__ = [
    "NodeTransport",
    "CosmosGrpcTransport",
    "map_rpc_error",
    "EvmRpcTransport",
]
