"""Position sizing for autonomous entries."""


def safe_size(balance: float, price: float, risk_fraction: float, cap: float) -> float:
    """Compute a risk-bounded order notional.
    
    The result is ``max(0, min(balance * risk_fraction, cap))`` and never
    exceeds the available balance. Sizing is notional-based; ``price`` is
    accepted so callers can convert to units afterwards.
    
    Args:
        balance: Available balance of the account mode.
        price: Current price of the pair (unused by the sizing rule).
        risk_fraction: Share of balance to risk (0.02 for 2%).
        cap: Maximum notional per position.
        
    Returns:
        Order notional, >= 0.
    """
    if balance <= 0:
        return 0.0
    size = min(balance * risk_fraction, cap, balance)
    return max(0.0, size)
