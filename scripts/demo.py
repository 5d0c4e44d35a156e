#!/usr/bin/env python3
"""
Run the hypertension example: load the sample guideline and execute fixture test cases.

Usage (from project root):
  python scripts/demo.py

Output: formatted table of results and a short evaluation report.
"""
import json
import sys
from pathlib import Path

ROOT = Path(__file__).resolve().parent.parent
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

MODEL_PATH = ROOT / "models" / "sample_hypertension_v1.json"
FIXTURES_PATH = ROOT / "tests" / "fixtures" / "hypertension_cases.json"
REPORT_PATH = ROOT / "models" / "hypertension-demo-report.txt"


def main() -> None:
    if not MODEL_PATH.exists():
        print(f"Error: Guideline not found at {MODEL_PATH}")
        sys.exit(1)
    if not FIXTURES_PATH.exists():
        print(f"Error: Fixtures not found at {FIXTURES_PATH}")
        sys.exit(1)

    from guidewalk.models.guideline import TestCase
    from guidewalk.services.decision_service import summarize_inputs
    from guidewalk.services.guideline_service import load_guideline_file
    from guidewalk.services.test_service import run_all_tests

    guideline = load_guideline_file(MODEL_PATH)
    cases_data = json.loads(FIXTURES_PATH.read_text(encoding="utf-8"))
    cases = [TestCase.model_validate({"guideline_id": guideline.guideline_id, **c}) for c in cases_data]

    print(f"Guideline: {guideline.name} (id={guideline.guideline_id})")
    print(f"Running {len(cases)} test cases...\n")

    suite = run_all_tests(guideline, cases)

    col_id = 30
    col_pass = 6
    col_level = 8
    col_action = 48
    header = f"{'Case ID':<{col_id}} {'Pass':<{col_pass}} {'Level':<{col_level}} {'Actual action':<{col_action}}"
    print(header)
    print("-" * (col_id + col_pass + col_level + col_action))
    for r in suite.results:
        action = (r.actual_action or "")[: col_action - 2]
        print(f"{r.test_case_id:<{col_id}} {'Yes' if r.passed else 'No':<{col_pass}} {r.actual_level or '-':<{col_level}} {action:<{col_action}}")

    print()
    print(f"Summary: {suite.passed}/{suite.total} passed")

    lines = [
        "Guidewalk Hypertension Demo - Evaluation Report",
        "=" * 50,
        f"Guideline: {MODEL_PATH}",
        f"Fixtures: {FIXTURES_PATH}",
        f"Total cases: {suite.total}",
        f"Passed: {suite.passed}",
        f"Failed: {suite.failed}",
        "",
        "Cases:",
    ]
    for tc, r in zip(cases, suite.results):
        lines.append(f"  - {tc.id}: {'passed' if r.passed else r.error_message or 'path/action mismatch'}")
        lines.append(f"    Inputs: {summarize_inputs(guideline, tc.input_values)}")
        if r.actual_path:
            lines.append(f"    Path: {' -> '.join(r.actual_path)}")
        for note in r.notes:
            lines.append(f"    Note: {note}")
    REPORT_PATH.parent.mkdir(parents=True, exist_ok=True)
    REPORT_PATH.write_text("\n".join(lines), encoding="utf-8")
    print(f"\nReport written to {REPORT_PATH}")
    print("Done.")


if __name__ == "__main__":
    main()
