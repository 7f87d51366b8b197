"""Built-in pattern detectors, one per vulnerability category."""

from .access_control import AccessControlDetector
from .integer_overflow import IntegerOverflowDetector
from .reentrancy import ReentrancyDetector
from .registry import RULES, BaseDetector, DetectorRegistry, Rule
from .timestamp import TimestampDependenceDetector
from .tx_origin import TxOriginDetector
from .unchecked_call import UncheckedCallDetector

__all__ = [
    "RULES",
    "Rule",
    "DetectorRegistry",
    "BaseDetector",
    "build_default_registry",
    "AccessControlDetector",
    "IntegerOverflowDetector",
    "ReentrancyDetector",
    "TimestampDependenceDetector",
    "TxOriginDetector",
    "UncheckedCallDetector",
]


def build_default_registry() -> DetectorRegistry:
    """Fresh registry with every built-in detector registered."""
    reg = DetectorRegistry()
    reg.register(ReentrancyDetector())
    reg.register(TxOriginDetector())
    reg.register(TimestampDependenceDetector())
    reg.register(UncheckedCallDetector())
    reg.register(IntegerOverflowDetector())
    reg.register(AccessControlDetector())
    return reg
