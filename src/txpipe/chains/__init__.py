from .profiles import ChainProfile, PROFILES, get_profile, GAIA, NEUTRON, OSMOSIS, NOBLE, ETHEREUM, BASE, GWEI
from .constants import fetch_registry_gas_price, parse_registry_gas_price

__all__ = [
    "ChainProfile",
    "PROFILES",
    "get_profile",
    "GAIA",
    "NEUTRON",
    "OSMOSIS",
    "NOBLE",
    "ETHEREUM",
    "BASE",
    "GWEI",
    "fetch_registry_gas_price",
    "parse_registry_gas_price",
]
