"""Delete an MLflow experiment (or a single run) with its artifacts.

Uses MLFLOW_TRACKING_URI from the environment (e.g. http://localhost:5001)
unless --tracking-uri is given. Artifact backend is chosen by
ARTIFACT_STORE_BACKEND (gcs or local).

Examples:
    python scripts/delete_mlflow_experiment.py 12 --delete-artifacts
    python scripts/delete_mlflow_experiment.py --run-id 3f2a... --delete-artifacts
"""

from __future__ import annotations

import argparse
import logging
import sys

from dotenv import load_dotenv

from mlflow_cleanup import CleanupError, delete_experiment, delete_run


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Cascade-delete an MLflow experiment or run and its artifacts."
    )
    target = parser.add_mutually_exclusive_group(required=True)
    target.add_argument("experiment_id", nargs="?", help="Experiment to delete")
    target.add_argument("--run-id", help="Delete a single run instead")
    parser.add_argument(
        "--delete-artifacts",
        action="store_true",
        help="Also delete stored artifacts",
    )
    parser.add_argument("--tracking-uri", help="Overrides MLFLOW_TRACKING_URI")
    parser.add_argument("-v", "--verbose", action="store_true", help="Debug logging")
    return parser


def main(argv: list[str] | None = None) -> int:
    args = _build_parser().parse_args(argv)
    load_dotenv()
    logging.basicConfig(level=logging.DEBUG if args.verbose else logging.INFO)

    try:
        if args.run_id:
            delete_run(
                args.run_id,
                delete_artifact=args.delete_artifacts,
                tracking_uri=args.tracking_uri,
            )
            print(f"Deleted run {args.run_id}.")
            return 0

        report = delete_experiment(
            args.experiment_id,
            delete_artifact=args.delete_artifacts,
            tracking_uri=args.tracking_uri,
        )
    except (CleanupError, ValueError) as e:
        print(f"Deletion failed: {e}", file=sys.stderr)
        return 1

    print(
        f"Deleted experiment {report.experiment_id}: "
        f"{len(report.deleted_run_ids)} run(s) deleted, "
        f"{len(report.failed_runs)} failed."
    )
    if report.artifact_path:
        print(f"Deleted artifacts under {report.artifact_path}.")
    if report.has_failures:
        for run_id, message in report.failed_runs.items():
            print(f"  {run_id}: {message}", file=sys.stderr)
        return 2
    return 0


if __name__ == "__main__":
    sys.exit(main())
