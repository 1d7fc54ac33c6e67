"""
create3-deploy: deterministic contract deployments through a CREATE3 factory.

A contract's address depends only on the deploying account and a 32-byte
salt, so the same contract lands at the same address on every chain.
"""

__version__ = "0.1.0"
