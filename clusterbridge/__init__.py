"""Flex Cluster Bridge: DX cluster spots on the FlexRadio panadapter."""

from .constants import VERSION

__version__ = VERSION
