from .container import AppContainer, build_container
from .contract import OPERATIONS, SupplyChainContract

__all__ = ["AppContainer", "build_container", "OPERATIONS", "SupplyChainContract"]
