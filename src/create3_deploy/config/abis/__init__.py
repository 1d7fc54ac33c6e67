"""
Contract ABI package for create3-deploy.

Contains the ABIs of the singleton infrastructure contracts.
"""

from .create3 import CREATE3_FACTORY_ABI

__all__ = [
    'CREATE3_FACTORY_ABI',
]
