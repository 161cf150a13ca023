from __future__ import annotations
from typing import Dict, Any, List
import json


def write_json(path: str, payload: Dict[str, Any]) -> None:
    with open(path, "w", encoding="utf-8") as f:
        json.dump(payload, f, ensure_ascii=False, indent=2)


def write_txt(path: str, payload: Dict[str, Any]) -> None:
    with open(path, "w", encoding="utf-8") as f:
        f.write(render_txt(payload))


def render_diff_txt(diff: List[Dict[str, Any]]) -> str:
    lines: List[str] = []
    for d in diff:
        kind = d.get("type")
        bid = d.get("blockId")
        if kind == "modified":
            lines.append(f"~ {bid}")
            lines.append(f"    - {d.get('oldText', '')}")
            lines.append(f"    + {d.get('newText', '')}")
        elif kind == "inserted":
            lines.append(f"+ {bid}: {d.get('newText', '')}")
        elif kind == "deleted":
            lines.append(f"- {bid}: {d.get('oldText', '')}")
        elif kind == "moved":
            lines.append(f"> {bid} (moved)")
        else:
            lines.append(f"= {bid}: note: {d.get('annotation', '')}")
    return "\n".join(lines)


def render_txt(payload: Dict[str, Any]) -> str:
    lines: List[str] = []
    lines.append(f"Review Bundle: {payload.get('timestamp_utc')}")
    lines.append("")
    a = payload.get("artifacts", {})
    lines.append("Artifacts")
    lines.append(f"- Document: {a.get('document')}")
    lines.append(f"- Batch:    {a.get('batch')}")
    lines.append(f"- Output:   {a.get('output_document') or '[not written]'}")
    lines.append("")

    gate = payload.get("gate") or {}
    summary = gate.get("summary") or {}
    lines.append("Policy Gate")
    lines.append(f"- Total:    {summary.get('totalOps', 0)}")
    lines.append(f"- Allowed:  {summary.get('allowedOps', 0)}")
    lines.append(f"- Blocked:  {summary.get('blockedOps', 0)}")
    lines.append(f"- Warnings: {summary.get('warningsCount', 0)}")
    for b in gate.get("blocked", []) or []:
        lines.append(f"- [BLOCKED] {b['op']['op']} {b['op']['blockId']}: {b['reason']}")
    for w in (gate.get("warnings", []) or [])[:60]:
        for h in w["hits"]:
            lines.append(f"- [{h['severity'].upper()}] {h['rule']} @ {h['blockId']}: {h['message']}")
    lines.append("")

    sim = payload.get("simulation") or {}
    lines.append("Simulation")
    if sim.get("ok"):
        lines.append(f"- New version: {sim.get('newVersion')}")
        lines.append(f"- Changed:     {', '.join(sim.get('changedBlocks') or []) or '[none]'}")
        diff = sim.get("diff") or []
        if diff:
            lines.append("")
            lines.append(render_diff_txt(diff))
    else:
        lines.append(f"- Failed: {sim.get('code')}")
        for c in sim.get("conflicts", []) or []:
            state = "missing" if c.get("missing") else f"hash={c.get('currentHash', '')[:12]}"
            lines.append(f"  - {c['blockId']} ({state})")
    lines.append("")

    applied = payload.get("apply")
    if applied is not None:
        lines.append("Apply")
        lines.append(f"- OK: {applied.get('ok')}")
        if applied.get("ok"):
            lines.append(f"- New version: {applied.get('newVersion')}")
        else:
            lines.append(f"- Code: {applied.get('code')}")
        lines.append("")

    notes = payload.get("notes")
    if notes:
        lines.append("Notes")
        lines.append(notes)
    return "\n".join(lines)
