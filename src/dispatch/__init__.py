"""
Dispatch: per-candidate delivery of introduction messages with fallbacks.
"""

from src.dispatch.fallback_chain import DeliveryTargets, DispatchChain, OutboundMessage

__all__ = ["DeliveryTargets", "DispatchChain", "OutboundMessage"]
