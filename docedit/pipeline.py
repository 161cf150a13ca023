from __future__ import annotations
from typing import Dict, Any
from dataclasses import asdict
from pathlib import Path
from datetime import datetime, timezone
import logging

from docedit.ir import Document, StructureInventory
from docedit.apply import simulate_ops, apply_ops
from docedit.editops import batch_to_dict
from docedit.gate import GateContext, gate_and_justify, get_policy_summary
from docedit.policy import SceneMeta, SceneBlock
from docedit.rules.load_rules import DEFAULT_RULE_PACK, load_rule_pack, load_style_rules, load_scene_meta
from docedit.adapters.json_adapter import load_document_json, write_document_json, load_batch_json
from docedit.changelog import write_json, write_txt

logger = logging.getLogger(__name__)

MODES = ("gate", "simulate", "apply")


def load_document(path: str) -> Document:
    if Path(path).suffix.lower() == ".docx":
        from docedit.adapters.docx_adapter import extract_document
        return extract_document(path)
    return load_document_json(path)


def write_document(path: str, doc: Document) -> None:
    if Path(path).suffix.lower() == ".docx":
        from docedit.adapters.docx_adapter import emit_docx
        emit_docx(doc, path)
    else:
        write_document_json(path, doc)


def run_pipeline(
    *,
    document_path: str,
    batch_path: str,
    out_dir: str,
    mode: str = "simulate",
    rules_path: str | None = None,
    scene_path: str | None = None,
    intent: str = "",
    allow_override: bool = False,
) -> Dict[str, Any]:
    if mode not in MODES:
        raise ValueError(f"Unknown mode {mode!r} (expected one of {', '.join(MODES)})")

    ts = datetime.now(timezone.utc).isoformat(timespec="seconds").replace("+00:00", "Z")
    stem = Path(document_path).stem
    bundle = Path(out_dir) / f"{stem}_{ts.replace('-', '').replace(':', '').replace('T', '_')}"
    bundle.mkdir(parents=True, exist_ok=True)

    doc = load_document(document_path)
    batch = load_batch_json(batch_path)
    if batch.doc_id != doc.id:
        logger.warning("Batch targets %s but document is %s", batch.doc_id, doc.id)
    logger.info("Loaded %s (%d blocks) and a batch of %d ops", doc.id, len(doc.blocks), len(batch.ops))

    style = load_style_rules(load_rule_pack(rules_path or DEFAULT_RULE_PACK))
    if scene_path:
        scene = load_scene_meta(scene_path, doc.blocks)
    else:
        scene = SceneMeta(id=doc.id, blocks=[SceneBlock(id=b.id, text=b.text, hash=b.hash) for b in doc.blocks])

    ctx = GateContext(scene_meta=scene, style=style, allow_override=allow_override)
    gated = gate_and_justify(batch, ctx, intent)
    logger.info(get_policy_summary(gated.result))

    payload: Dict[str, Any] = {
        "timestamp_utc": ts,
        "mode": mode,
        "artifacts": {"document": document_path, "batch": batch_path, "output_document": None},
        "gate": gated.result.to_dict(),
        "annotated_batch": batch_to_dict(gated.annotated_batch),
        "notes": gated.annotated_batch.notes,
        "simulation": None,
        "apply": None,
        "structure": {"pre": asdict(StructureInventory.of(doc.blocks)), "post": None},
    }

    if mode != "gate":
        sim = simulate_ops(gated.annotated_batch, doc)
        payload["simulation"] = sim.to_dict()
        if not sim.ok:
            logger.warning("Simulation failed: %s", sim.code)

        if mode == "apply" and sim.ok:
            result = apply_ops(gated.annotated_batch, doc)
            payload["apply"] = result.to_dict()
            if result.ok:
                new_doc = Document.create(doc.id, doc.title, result.new_blocks)
                out_doc = str(bundle / f"{stem}.edited{Path(document_path).suffix or '.json'}")
                write_document(out_doc, new_doc)
                payload["artifacts"]["output_document"] = out_doc
                payload["structure"]["post"] = asdict(StructureInventory.of(new_doc.blocks))
                logger.info("Wrote %s (version %s)", out_doc, new_doc.base_version[:12])

    write_json(str(bundle / f"{stem}.changelog.json"), payload)
    write_txt(str(bundle / f"{stem}.changelog.txt"), payload)
    payload["bundle_dir"] = str(bundle)
    return payload
