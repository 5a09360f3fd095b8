"""
Workflows module - Pipeline orchestration for digest generation.
"""
from newsagent.workflows.base import Pipeline
from newsagent.workflows.digest_pipeline import ClientSet, DigestPipeline
from newsagent.workflows.pipeline_factory import build_clients, create_pipeline_from_config

__all__ = [
    "Pipeline",
    "ClientSet",
    "DigestPipeline",
    "build_clients",
    "create_pipeline_from_config",
]
