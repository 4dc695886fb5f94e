"""
Imperative shell: collaborators, configuration and the staking services.
"""

from .collaborators import Collaborators
from .config import BatchBudget, ColonyParams, ProgramConfig, config_from_dict, load_config
from .program import StakingProgram

__all__ = [
    "BatchBudget",
    "Collaborators",
    "ColonyParams",
    "ProgramConfig",
    "StakingProgram",
    "config_from_dict",
    "load_config",
]
