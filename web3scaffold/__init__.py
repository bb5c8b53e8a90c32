"""web3scaffold -- scaffold web3 dapp projects from a few interactive choices.

Quick usage::

    from web3scaffold import Config, Pipeline

    pipeline = Pipeline(Config(output_dir=Path("/tmp")))
    result = await pipeline.run("my-dapp", framework="nextjs", package_manager="npm")
"""

from web3scaffold.config import BlockchainTooling, Config, Framework, PackageManager
from web3scaffold.options import OptionsResolver, ProjectOptions
from web3scaffold.pipeline import Pipeline, PipelineState, RunResult

__version__ = "0.1.0"

__all__ = [
    "BlockchainTooling",
    "Config",
    "Framework",
    "OptionsResolver",
    "PackageManager",
    "Pipeline",
    "PipelineState",
    "ProjectOptions",
    "RunResult",
]
