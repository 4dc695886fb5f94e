"""
colonystake: tokenized staking positions with a lazily accrued reward engine.

- `colonystake.core`: pure integer kernels (rewards, bonuses, fees, infusion)
- `colonystake.state`: ledger tables and deterministic state roots
- `colonystake.integration`: the imperative shell (`StakingProgram`)
"""

__version__ = "0.1.0"
