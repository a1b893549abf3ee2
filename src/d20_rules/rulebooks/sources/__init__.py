"""
Rule sources: where catalog content comes from.

- SRDSource: the built-in System Reference Document selection
- CustomSource: house rules from local JSON/YAML files
"""

from .base import ContentCounts, RuleSourceBase
from .custom import CustomSource, CustomSourceError
from .srd import SRDSource

__all__ = [
    "ContentCounts",
    "CustomSource",
    "CustomSourceError",
    "RuleSourceBase",
    "SRDSource",
]
