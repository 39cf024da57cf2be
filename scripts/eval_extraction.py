from __future__ import annotations

import argparse
import json
from collections import Counter
from pathlib import Path

from jsonrescue.models import ExtractionSuccess
from jsonrescue.parsing.pipeline import safe_extract_json


def load_samples(path: Path) -> list[dict]:
    data = json.loads(path.read_text(encoding="utf-8"))
    if isinstance(data, dict):
        data = data.get("samples", [])
    if not isinstance(data, list):
        raise SystemExit(f"Expected a list of samples in {path}")
    return data


def evaluate(samples: list[dict]) -> tuple[dict, list[dict]]:
    stages: Counter[str] = Counter()
    succeeded = 0
    matched = 0
    with_expected = 0
    outcomes = []

    for idx, item in enumerate(samples):
        outcome = safe_extract_json(item.get("text", ""), item.get("candidate_keys") or [])
        record = {"id": item.get("id", idx), "ok": outcome.ok}
        if isinstance(outcome, ExtractionSuccess):
            succeeded += 1
            stages[outcome.stage.value] += 1
            record["stage"] = outcome.stage.value
            record["value"] = outcome.value
        else:
            stages["failed"] += 1
            record["reason"] = outcome.reason
        if "expected" in item:
            with_expected += 1
            hit = isinstance(outcome, ExtractionSuccess) and outcome.value == item["expected"]
            matched += int(hit)
            record["match"] = hit
        outcomes.append(record)

    count = max(len(samples), 1)
    metrics = {
        "count": len(samples),
        "success_rate": succeeded / count,
        "exact_match": matched / max(with_expected, 1),
        "stages": dict(sorted(stages.items())),
    }
    return metrics, outcomes


def main() -> int:
    parser = argparse.ArgumentParser(description="Run JSON extraction over a file of model outputs.")
    parser.add_argument("--data", default="data/samples.json")
    parser.add_argument("--out", default="extraction_report.json")
    parser.add_argument("--limit", type=int, default=0)
    args = parser.parse_args()

    data_path = Path(args.data)
    if not data_path.exists():
        raise SystemExit(f"Missing data file: {data_path}")

    samples = load_samples(data_path)
    if args.limit:
        samples = samples[: args.limit]

    metrics, outcomes = evaluate(samples)
    Path(args.out).write_text(json.dumps({"metrics": metrics, "outcomes": outcomes}, ensure_ascii=True), encoding="utf-8")
    print(json.dumps(metrics, ensure_ascii=True))
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
