"""
Configuration package for create3-deploy.

Chain descriptors, the deploy config file, singleton records and logging.
"""

from .network import (
    CHAINS,
    TARGET_CHAINS,
    ChainTarget,
    get_chain_config,
    get_target_chain,
    register_chain,
)

from .deploy_config import (
    DeployConfig,
    VerificationDescriptor,
    load_config,
)

from .singletons import (
    FACTORY,
    MULTICALL,
    SingletonInfrastructure,
    get_singleton,
)

__all__ = [
    # Network
    'CHAINS',
    'TARGET_CHAINS',
    'ChainTarget',
    'get_chain_config',
    'get_target_chain',
    'register_chain',

    # Deploy config
    'DeployConfig',
    'VerificationDescriptor',
    'load_config',

    # Singletons
    'FACTORY',
    'MULTICALL',
    'SingletonInfrastructure',
    'get_singleton',
]
