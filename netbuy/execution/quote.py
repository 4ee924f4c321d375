"""
Constant-product quote (x * y = k) for minimum-out protection.
"""

RAYDIUM_FEE_BPS = 25  # 0.25% AMM v4 fee


class ConstantProductQuote:
    """Raydium AMM v4 pools are constant product."""

    @staticmethod
    def amount_out(amount_in: int, reserve_in: int, reserve_out: int, fee_bps: int = RAYDIUM_FEE_BPS) -> int:
        """Expected output for amount_in against the given reserves."""
        if amount_in <= 0 or reserve_in <= 0 or reserve_out <= 0:
            return 0
        in_after_fee = amount_in * (10000 - fee_bps) // 10000
        k = reserve_in * reserve_out
        new_reserve_out = k // (reserve_in + in_after_fee)
        return reserve_out - new_reserve_out

    @staticmethod
    def min_amount_out(expected: int, slippage_bps: int) -> int:
        return expected * (10000 - slippage_bps) // 10000
