from __future__ import annotations

import argparse
import json
import logging
import sys
from pathlib import Path

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from apps.worker.pipeline import run_local  # noqa: E402
from apps.worker.steps.step01_page_split import OCRError  # noqa: E402
from apps.worker.steps.step10_export import generate_csv, rows_from_classifications  # noqa: E402


def main() -> int:
    parser = argparse.ArgumentParser(description="Build a dated page chronology and duplicate report for one PDF.")
    parser.add_argument("--input", required=True, help="Path to source PDF.")
    parser.add_argument("--llm", action="store_true", help="Classify dated pages with the language model.")
    parser.add_argument("--mode", choices=["dated", "ambiguous"], default=None, help="Language-model routing mode.")
    parser.add_argument("--csv", help="Write language-model events to this CSV path.")
    args = parser.parse_args()

    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        stream=sys.stderr,
    )

    kwargs = {"use_llm": args.llm}
    if args.mode:
        kwargs["mode"] = args.mode
    try:
        result = run_local(args.input, **kwargs)
    except OCRError as exc:
        print(f"error: {exc}", file=sys.stderr)
        return 2

    if args.csv:
        Path(args.csv).write_bytes(generate_csv(rows_from_classifications(result.classifications)))

    payload = {
        "chronology": result.chronology.model_dump(mode="json"),
        "duplicates": result.duplicates.model_dump(mode="json"),
        "warnings": [w.model_dump(mode="json") for w in result.warnings],
    }
    print(json.dumps(payload, indent=2))
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
