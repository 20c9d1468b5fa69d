from .ticks import (
    Q96,
    MIN_TICK,
    MAX_TICK,
    TickRange,
    TickRounding,
    price_to_sqrt_price_x96,
    sqrt_price_x96_to_price,
    sqrt_price_x96_to_raw_price,
    sqrt_price_x96_to_tick,
    tick_to_sqrt_price_x96,
    get_sqrt_ratio_at_tick,
    get_tick_at_sqrt_ratio,
    round_tick_to_spacing,
    tick_spacing_for_fee,
    full_range_ticks,
)
from .liquidity import (
    TokenAmounts,
    PositionValue,
    liquidity_from_amounts,
    amounts_from_liquidity,
    estimate_position_value,
    pool_share_percent,
)
from .constant_product import constant_product_amount_out, constant_product_amount_in
