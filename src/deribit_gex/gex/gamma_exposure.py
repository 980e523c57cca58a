"""
Gamma exposure of a single instrument.

Dollar exposure follows the 1%-move GEX convention:

    OI * gamma * 100 * spot * (0.01 * spot)

i.e. the dealer hedge flow, in dollars, for a 1% move in the underlying.
"""

import math
from dataclasses import dataclass
from typing import Optional

CONTRACT_MULTIPLIER = 100
PRICE_MOVE_PCT = 0.01


@dataclass(frozen=True)
class GammaExposure:
    contract_units: float
    dollar_units: float
    option_type: str
    skipped: bool = False

    @property
    def signed_dollar_units(self) -> float:
        """Calls positive, puts negative"""
        return self.dollar_units if self.option_type == 'call' else -self.dollar_units

    @property
    def signed_contract_units(self) -> float:
        return self.contract_units if self.option_type == 'call' else -self.contract_units


def calculate_exposure(gamma: Optional[float], spot: float, open_interest: float,
                       option_type: str) -> GammaExposure:
    """
    Exposure of one instrument in contract units (gamma * OI) and dollars.

    Unavailable gamma or non-positive open interest gives zero exposure
    flagged as skipped.
    """
    if (gamma is None or not math.isfinite(gamma)
            or open_interest is None or not math.isfinite(open_interest) or open_interest <= 0):
        return GammaExposure(0.0, 0.0, option_type, skipped=True)

    contract_units = gamma * open_interest
    dollar_units = open_interest * gamma * CONTRACT_MULTIPLIER * spot * (PRICE_MOVE_PCT * spot)

    return GammaExposure(contract_units, dollar_units, option_type)
