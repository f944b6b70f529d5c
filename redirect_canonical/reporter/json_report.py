"""JSON report output."""

from __future__ import annotations

import json
import time
from pathlib import Path

from redirect_canonical.models.scenario import ScenarioOutcome


def generate_json_report(outcomes: list[ScenarioOutcome], output_path: Path) -> None:
    """Write a machine-readable JSON report of a scenario run."""
    report = {
        "generated_at": time.strftime("%Y-%m-%dT%H:%M:%SZ", time.gmtime()),
        "total": len(outcomes),
        "redirects": sum(1 for o in outcomes if o.redirected),
        "failures": [o.name or o.url for o in outcomes if o.passed is False],
        "outcomes": [o.model_dump() for o in outcomes],
    }

    output_path = Path(output_path)
    output_path.parent.mkdir(parents=True, exist_ok=True)
    with open(output_path, "w") as f:
        json.dump(report, f, indent=2, default=str)
