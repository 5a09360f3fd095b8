"""
Contains base class for digest pipelines
"""
from abc import ABC, abstractmethod
from typing import Dict, Optional

from newsagent.core.entities import RunResult, Trigger


class Pipeline(ABC):
    """
    Orchestrates ingestion → enrichment → audio → persistence → delivery
    for one run date.
    """

    name: str

    @abstractmethod
    async def run(
        self,
        trigger: Trigger = Trigger.DIRECT,
        limits: Optional[Dict[str, int]] = None,
    ) -> RunResult:
        """
        Execute one run and return its result.
        Must never raise uncaught exceptions.
        """
        raise NotImplementedError
