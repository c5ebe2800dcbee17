"""
Take-Profit Limit-Order Ledger

Core imports are lazily loaded so that importing the package does not pull
in every submodule. For direct module access, import from submodules:

    from takeprofit.ledger import TakeProfitHook
    from takeprofit.exchange import PoolKey, PoolManager
    from takeprofit.exceptions import NothingToRedeem
"""

# Lazy imports to avoid loading everything at package import
def __getattr__(name):
    if name == 'TakeProfitHook':
        from .ledger import TakeProfitHook
        return TakeProfitHook
    elif name == 'TakeProfitStateManager':
        from .exchange.state_manager import TakeProfitStateManager
        return TakeProfitStateManager
    elif name == 'TakeProfitError':
        from .exceptions import TakeProfitError
        return TakeProfitError
    raise AttributeError(f"module 'takeprofit' has no attribute {name!r}")

__all__ = ['TakeProfitHook', 'TakeProfitStateManager', 'TakeProfitError']
