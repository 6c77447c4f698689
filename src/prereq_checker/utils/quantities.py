"""
Conversion of cluster-reported CPU and memory quantities.

Node allocatable and requested values come back from the cluster in a mix of
binary suffixes (Ki, Mi, ...), milli-units and plain byte counts. These helpers
turn them into millicores and decimal megabytes. A value with an unrecognized
unit is returned as UnitUnsupported so that callers never mistake it for zero.
"""
import re
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Union

from src.prereq_checker.models.cluster import (
    Megabytes,
    Millicores,
    QuantityUnit,
    ResourceQuantity,
    UnitUnsupported,
)

_QUANTITY_PATTERN = re.compile(r"^(?P<magnitude>\d+(?:\.\d+)?)(?P<suffix>Ki|Mi|Gi|Ti|Pi|Ei|m)?$")

_BINARY_EXPONENTS = {
    QuantityUnit.KI: 10,
    QuantityUnit.MI: 20,
    QuantityUnit.GI: 30,
    QuantityUnit.TI: 40,
    QuantityUnit.PI: 50,
    QuantityUnit.EI: 60,
}

_MEGABYTE = Decimal(10) ** 6


def parse_quantity(raw: str) -> Union[ResourceQuantity, UnitUnsupported]:
    """
    Split a raw quantity into magnitude and unit.

    Examples:
        >>> parse_quantity("30998112Ki").unit
        <QuantityUnit.KI: 'Ki'>
        >>> parse_quantity("512M")
        UnitUnsupported(raw='512M')
    """
    text = str(raw).strip() if raw is not None else ""
    match = _QUANTITY_PATTERN.match(text)
    if not match:
        return UnitUnsupported(raw=text)

    suffix = match.group("suffix")
    magnitude = match.group("magnitude")
    if suffix is None:
        # Plain byte counts must be integers
        if "." in magnitude:
            return UnitUnsupported(raw=text)
        return ResourceQuantity(magnitude=Decimal(magnitude), unit=QuantityUnit.RAW_INTEGER)

    return ResourceQuantity(magnitude=Decimal(magnitude), unit=QuantityUnit(suffix))


def normalize_memory(raw: str) -> Megabytes:
    """
    Convert a memory quantity to decimal megabytes.

    Args:
        raw: Memory string (e.g., "30998112Ki", "26958Mi", "4096", "500m")

    Returns:
        Megabytes as Decimal, or UnitUnsupported

    Examples:
        >>> normalize_memory("1Ki")
        Decimal('0.001024')
        >>> normalize_memory("2000000")
        Decimal('2')
        >>> normalize_memory("16G")
        UnitUnsupported(raw='16G')
    """
    quantity = parse_quantity(raw)
    if isinstance(quantity, UnitUnsupported):
        return quantity

    if quantity.unit in _BINARY_EXPONENTS:
        return quantity.magnitude * (2 ** _BINARY_EXPONENTS[quantity.unit]) / _MEGABYTE
    if quantity.unit is QuantityUnit.MILLI:
        return quantity.magnitude / Decimal(10) ** 9
    # RAW_INTEGER: bytes
    return quantity.magnitude / _MEGABYTE


def cpu_to_millicores(raw: str) -> Millicores:
    """
    Convert a CPU quantity to millicores.

    Examples:
        >>> cpu_to_millicores("3500m")
        3500
        >>> cpu_to_millicores("4")
        4000
        >>> cpu_to_millicores("2.5")
        2500
    """
    text = str(raw).strip() if raw is not None else ""
    try:
        if text.endswith("m"):
            value = Decimal(text[:-1])
        else:
            value = Decimal(text) * 1000
        if not value.is_finite() or value < 0:
            return UnitUnsupported(raw=text)
        # Fractional millicores round half away from zero, like the capacity totals
        return int(value.quantize(Decimal(1), rounding=ROUND_HALF_UP))
    except InvalidOperation:
        return UnitUnsupported(raw=text)
