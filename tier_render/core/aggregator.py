"""
Result Aggregator
=================

Groups unordered task outcomes by tier and persists them as one JSON
document keyed by tier name.
"""

from pathlib import Path
from typing import Dict, Iterable, List, Union
import json

from tier_render.config.logging import get_logger
from tier_render.models.schemas import TaskOutcome, outcome_from_record, outcome_to_record

logger = get_logger(__name__)

GroupedResults = Dict[str, List[TaskOutcome]]


class ResultWriteError(Exception):
    """Raised when the result file cannot be written."""

    pass


class ResultAggregator:
    """Collects outcomes and writes the tier-grouped result file."""

    def __init__(self):
        self.logger = logger.bind(component="result_aggregator")

    @staticmethod
    def group(outcomes: Iterable[TaskOutcome]) -> GroupedResults:
        """Partition outcomes by tier, keeping encounter order within a tier."""
        grouped: GroupedResults = {}
        for outcome in outcomes:
            grouped.setdefault(outcome.tier, []).append(outcome)
        return grouped

    def write(self, grouped: GroupedResults, destination: Union[str, Path]) -> Path:
        """
        Serialize grouped results to ``destination``.

        Raises:
            ResultWriteError: If the directory or file cannot be written
        """
        destination = Path(destination)
        document = {
            tier: [outcome_to_record(outcome) for outcome in outcomes]
            for tier, outcomes in grouped.items()
        }
        try:
            destination.parent.mkdir(parents=True, exist_ok=True)
            destination.write_text(
                json.dumps(document, indent=2, ensure_ascii=False), encoding="utf-8"
            )
        except (OSError, TypeError, ValueError) as e:
            self.logger.error("Failed to write results", destination=str(destination), error=str(e))
            raise ResultWriteError(f"Failed to write results to {destination}: {e}") from e

        self.logger.info(
            "Results written",
            destination=str(destination),
            tiers=len(document),
            records=sum(len(records) for records in document.values()),
        )
        return destination


def load_results(source: Union[str, Path]) -> GroupedResults:
    """Read a result file back into tier-grouped outcomes."""
    document = json.loads(Path(source).read_text(encoding="utf-8"))
    return {
        tier: [outcome_from_record(record) for record in records]
        for tier, records in document.items()
    }
