from decimal import Decimal, InvalidOperation

import click
from eth_utils import to_checksum_address

from nest_template.constants import ONE_PERCENT


class MinInt(click.ParamType):
    name = "minint"

    def __init__(self, min_value):
        self.min_value = min_value

    def convert(self, value, param, ctx):
        try:
            ivalue = int(value)
        except ValueError:
            self.fail(f"{value} is not a valid integer", param, ctx)
        if ivalue < self.min_value:
            self.fail(
                f"{value} is less than the minimum allowed value of {self.min_value}", param, ctx
            )
        return ivalue


class Percentage(click.ParamType):
    """A percentage between 0 and 100, converted to the 18-decimal base used by Voting."""

    name = "percentage"

    def convert(self, value, param, ctx):
        if isinstance(value, int):
            return value
        try:
            pct = Decimal(str(value).strip().rstrip("%"))
        except InvalidOperation:
            self.fail(f"{value} is not a valid percentage", param, ctx)
        if not pct.is_finite() or not 0 <= pct <= 100:
            self.fail(f"{value} is not between 0 and 100", param, ctx)
        return int(pct * ONE_PERCENT)


class ChecksumAddress(click.ParamType):
    name = "checksum_address"

    def convert(self, value, param, ctx):
        try:
            value = to_checksum_address(value=value)
        except ValueError:
            self.fail(f"{value} is not a valid ethereum address", param, ctx)
        else:
            return value
