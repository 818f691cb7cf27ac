"""Constraint gadgets and the zkLogin relation.

Gadgets are plain functions over a ConstraintSystem; ZkLoginCircuit wires
them into the full relation for a given ZkLoginConfig. Named configurations
are registered in CONFIG_REGISTRY.
"""

from typing import Callable

from .base import ConstraintSystem, LinearCombination
from .zklogin import CLAIMS, ClaimLayout, ZkLoginCircuit, ZkLoginConfig

# Registry mapping configuration names to factories
CONFIG_REGISTRY: dict[str, Callable[[], ZkLoginConfig]] = {
    "default": ZkLoginConfig,
    "small": ZkLoginConfig.small,
}


def get_config(name: str) -> ZkLoginConfig:
    """Get a named configuration.

    Args:
        name: Name of the configuration (e.g., 'default', 'small')

    Returns:
        ZkLoginConfig instance

    Raises:
        KeyError: If no configuration is registered under name
    """
    if name in CONFIG_REGISTRY:
        return CONFIG_REGISTRY[name]()
    raise KeyError(
        f"No configuration named '{name}'. "
        f"Available: {list(CONFIG_REGISTRY.keys())}"
    )


def build_circuit(name: str = "default") -> ZkLoginCircuit:
    """Build the relation for a named configuration."""
    return ZkLoginCircuit(get_config(name))


__all__ = [
    "ConstraintSystem",
    "LinearCombination",
    "CLAIMS",
    "ClaimLayout",
    "ZkLoginConfig",
    "ZkLoginCircuit",
    "CONFIG_REGISTRY",
    "get_config",
    "build_circuit",
]
