from __future__ import annotations
import argparse
import json
import logging
import os
import yaml
from docedit.pipeline import run_pipeline, MODES


def main(argv=None):
    ap = argparse.ArgumentParser(
        prog="docedit",
        description="Gate, simulate and apply block-level edit batches",
    )
    ap.add_argument("document", help="Path to the document (.json snapshot or .docx)")
    ap.add_argument("batch", help="Path to a DocEditBatch JSON file")
    ap.add_argument("--out", default="./docedit_out", help="Output directory")
    ap.add_argument(
        "--mode", default="simulate", choices=list(MODES),
        help="gate (policy only), simulate (gate + diff), apply (gate + diff + write new document)"
    )

    policy_group = ap.add_argument_group("Policy Options")
    policy_group.add_argument(
        "--rules",
        default=os.environ.get("DOCEDIT_RULES"),
        help="Style rule pack YAML (or set DOCEDIT_RULES env var)"
    )
    policy_group.add_argument("--scene", help="Scene metadata YAML (outline, required beats)")
    policy_group.add_argument("--intent", default="", help="Intent recorded in the batch justifications")
    policy_group.add_argument(
        "--allow-override",
        action="store_true",
        help="Let ops through even when an outline guard blocks them"
    )
    ap.add_argument("-v", "--verbose", action="store_true", help="Debug logging")

    args = ap.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(levelname)s %(name)s: %(message)s",
    )

    try:
        payload = run_pipeline(
            document_path=args.document,
            batch_path=args.batch,
            out_dir=args.out,
            mode=args.mode,
            rules_path=args.rules,
            scene_path=args.scene,
            intent=args.intent,
            allow_override=args.allow_override,
        )
    except (ValueError, KeyError, OSError, yaml.YAMLError) as e:
        ap.error(str(e))

    summary = payload["gate"]["summary"]
    output = {
        "bundle_dir": payload["bundle_dir"],
        "mode": payload["mode"],
        "ops_total": summary["totalOps"],
        "ops_allowed": summary["allowedOps"],
        "ops_blocked": summary["blockedOps"],
        "warnings": summary["warningsCount"],
    }
    sim = payload.get("simulation")
    if sim is not None:
        output["simulate_ok"] = sim["ok"]
        output["new_version"] = sim.get("newVersion")
        if not sim["ok"]:
            output["error_code"] = sim["code"]
    if payload.get("apply") is not None:
        output["apply_ok"] = payload["apply"]["ok"]
        output["output_document"] = payload["artifacts"]["output_document"]

    print(json.dumps(output, indent=2))


if __name__ == "__main__":
    main()
