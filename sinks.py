"""
Persistence sinks for evaluation results.

The evaluator writes each metric row once, as soon as it is computed, and
the summary row once at the end. It never reads rows back.
"""
import json
from dataclasses import asdict, is_dataclass
from pathlib import Path


def _as_dict(row) -> dict:
    return asdict(row) if is_dataclass(row) else dict(row)


class MemorySink:
    """Keeps rows in lists; handy for tests and in-process callers."""

    def __init__(self):
        self.metric_rows = []
        self.summary_rows = []

    def insert_metric_row(self, row):
        self.metric_rows.append(row)

    def insert_summary_row(self, row):
        self.summary_rows.append(row)


class JsonlSink:
    """Appends metric rows to metrics.jsonl and writes summary.json."""

    def __init__(self, output_dir: str, extra: dict = None):
        self.output_dir = Path(output_dir)
        self.output_dir.mkdir(parents=True, exist_ok=True)
        self.metrics_path = self.output_dir / "metrics.jsonl"
        self.summary_path = self.output_dir / "summary.json"
        self.extra = extra or {}

    def insert_metric_row(self, row):
        with open(self.metrics_path, "a") as f:
            f.write(json.dumps({**self.extra, **_as_dict(row)}) + "\n")

    def insert_summary_row(self, row):
        with open(self.summary_path, "w") as f:
            json.dump({**self.extra, **_as_dict(row)}, f, indent=2)
