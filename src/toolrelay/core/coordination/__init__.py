from .claims import DEFAULT_CLAIM_TTL_S, ClaimReason, ClaimTable
from .coordinator import Coordinator

__all__ = ["ClaimReason", "ClaimTable", "Coordinator", "DEFAULT_CLAIM_TTL_S"]
